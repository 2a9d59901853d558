"""Filesystem capability used by request resolution.

The request handler only talks to the small interface below, so tests can
swap the real disk for ``MemoryFileSystem``.

Usage:
    from core.filesystem import LocalFileSystem, MemoryFileSystem
"""
import io
import os
import posixpath
import threading
import time


def _normalize(path):
    return path.replace("\\", "/")


class FileSystem:
    """Minimal set of filesystem operations the core relies on."""

    def absolute(self, path):
        """Return *path* as an absolute, forward-slash path."""
        raise NotImplementedError

    def is_file(self, path):
        raise NotImplementedError

    def is_dir(self, path):
        raise NotImplementedError

    def get_last_write_time(self, path):
        """Return the last modification time as a POSIX timestamp."""
        raise NotImplementedError

    def list_entries(self, directory):
        """Return full paths of the immediate files and subdirectories."""
        raise NotImplementedError

    def open_read(self, path):
        """Open *path* read-only as a binary stream. Caller closes it."""
        raise NotImplementedError


class LocalFileSystem(FileSystem):
    """The real disk."""

    def absolute(self, path):
        return _normalize(os.path.abspath(path))

    def is_file(self, path):
        return os.path.isfile(path)

    def is_dir(self, path):
        return os.path.isdir(path)

    def get_last_write_time(self, path):
        return os.stat(path).st_mtime

    def list_entries(self, directory):
        with os.scandir(directory) as it:
            return [_normalize(entry.path) for entry in it]

    def open_read(self, path):
        return open(path, "rb")


class MemoryFileSystem(FileSystem):
    """In-memory tree keyed by normalized absolute path.

    Directories are implied by the files beneath them and can also be
    created empty with :meth:`add_directory`.
    """

    def __init__(self, files=None):
        self._lock = threading.Lock()
        self._files = {}   # path -> (bytes, mtime)
        self._dirs = set()
        for path, content in (files or {}).items():
            self.add_file(path, content)

    def add_file(self, path, content=b"", mtime=None):
        if isinstance(content, str):
            content = content.encode("utf-8")
        path = self.absolute(path)
        with self._lock:
            self._files[path] = (bytes(content), time.time() if mtime is None else mtime)
            self._add_parents(path)

    def add_directory(self, path):
        path = self.absolute(path)
        with self._lock:
            self._dirs.add(path)
            self._add_parents(path)

    def _add_parents(self, path):
        parent = posixpath.dirname(path)
        while parent and parent not in self._dirs:
            self._dirs.add(parent)
            if posixpath.dirname(parent) == parent:
                break
            parent = posixpath.dirname(parent)

    def set_last_write_time(self, path, mtime):
        path = self.absolute(path)
        with self._lock:
            content, _ = self._files[path]
            self._files[path] = (content, mtime)

    def absolute(self, path):
        normalized = posixpath.normpath(_normalize(path))
        drive = normalized.split("/")[0]
        if not normalized.startswith("/") and not drive.endswith(":"):
            normalized = "/" + normalized
        return normalized

    def is_file(self, path):
        return self.absolute(path) in self._files

    def is_dir(self, path):
        return self.absolute(path) in self._dirs

    def get_last_write_time(self, path):
        try:
            return self._files[self.absolute(path)][1]
        except KeyError:
            raise FileNotFoundError(path) from None

    def list_entries(self, directory):
        directory = self.absolute(directory)
        if directory not in self._dirs:
            raise FileNotFoundError(directory)
        with self._lock:
            candidates = list(self._files) + list(self._dirs)
        return [p for p in candidates if p != directory and posixpath.dirname(p) == directory]

    def open_read(self, path):
        try:
            content, _ = self._files[self.absolute(path)]
        except KeyError:
            raise FileNotFoundError(path) from None
        return io.BytesIO(content)
