"""The core request path -> response function."""
import posixpath

from config import INDEX_FILE
from core.filesystem import LocalFileSystem
from core.listing import generate_directory_listing
from core.paths import combine_to_full_path, resolve
from core.responses import file_response, html_response, not_found_response


class RequestHandler:
    """Serves files, index pages and directory listings from a root directory.

    Filesystem errors (permission denied and the like) are not caught here;
    the transport turns them into a 500.
    """

    def __init__(self, root, fs=None):
        self.fs = fs or LocalFileSystem()
        self.root = combine_to_full_path(self.fs.absolute(root))

    def generate_response(self, request_path):
        file_path = resolve(self.root, request_path)
        if file_path is None:
            # directory traversal attempt or undecodable path, deny
            return not_found_response()

        if self.fs.is_file(file_path):
            return file_response(self.fs, file_path)

        if self.fs.is_dir(file_path):
            index_path = posixpath.join(file_path, INDEX_FILE)
            if self.fs.is_file(index_path):
                return file_response(self.fs, index_path)
            return html_response(generate_directory_listing(self.fs, self.root, file_path))

        return not_found_response()
