"""HTML directory listings."""
from html import escape
from urllib.parse import quote

from core.paths import normalize_separators

DIRECTORY_LISTING_HEADER = """
<style>
body { font-family: sans-serif; }
h1 { font-size: 16pt; }
ul { padding: 0; }
li {
  font-size: 14pt;
  list-style-type: none;
  padding: 5px 20px;
}
li:nth-child(odd) { background-color: #f8f8f8; }
a { color: #0086c1; }
</style>
<h1>Directory Listing</h1>
"""


def _relative_to_root(root, entry):
    """Path of *entry* relative to *root*, as a ``/``-prefixed link target."""
    root = normalize_separators(root).rstrip("/")
    entry = normalize_separators(entry)
    if entry.startswith(root + "/"):
        return entry[len(root):]
    return "/" + entry.lstrip("/")


def render_entry(root, entry):
    """One ``<li>`` link for a filesystem entry.

    The href is percent-encoded so names with ``#``, ``?`` or ``%`` link back
    to themselves once the request path is decoded.
    """
    relative_path = _relative_to_root(root, entry)
    display = [s for s in relative_path.split("/") if s][-1]
    href = quote(relative_path, safe="/")
    return f"<li><a href='{escape(href, quote=True)}'>{escape(display)}</a></li>"


def generate_directory_listing(fs, root, directory):
    """Render the immediate entries of *directory* as an unordered list.

    Entries come back in whatever order the filesystem returns them.
    """
    entries = "".join(render_entry(root, entry) for entry in fs.list_entries(directory))
    return f"{DIRECTORY_LISTING_HEADER}<ul>{entries}</ul>"
