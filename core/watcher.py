"""Watch the served directory and trigger a browser refresh on changes."""
import threading

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from config import WATCH_DEBOUNCE


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, on_change):
        super().__init__()
        self._on_change = on_change

    def on_any_event(self, event):
        if event.is_directory or event.event_type in ("opened", "closed_no_write"):
            return
        self._on_change(event.src_path)


class FileChangeNotifier:
    """Calls *notify* once per burst of file changes under *root*.

    Editors often write a file several times in a row (temp file, rename,
    touch); events arriving within *debounce* seconds of each other are
    collapsed into a single call.
    """

    def __init__(self, root, notify, debounce=WATCH_DEBOUNCE):
        self.root = str(root)
        self.notify = notify
        self.debounce = debounce
        self._timer = None
        self._lock = threading.Lock()
        self._observer = None

    def _schedule(self, path):
        logger.debug("Change detected: {}", path)
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self):
        with self._lock:
            self._timer = None
        logger.info("Files changed, refreshing browsers")
        self.notify()

    def start(self):
        self._observer = Observer()
        self._observer.schedule(_ChangeHandler(self._schedule), self.root, recursive=True)
        self._observer.daemon = True
        self._observer.start()
        logger.info("Watching {} for changes", self.root)

    def stop(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
