"""Request path -> filesystem path resolution with root containment.

All comparisons happen on forward-slash paths, whatever the host convention,
so a Windows root such as ``C:\\site`` and a POSIX root such as ``/site``
follow the same rules.
"""
import posixpath
from urllib.parse import unquote


def normalize_separators(path):
    """Get rid of Windows directory separators. ``/`` works everywhere."""
    return path.replace("\\", "/")


def combine_to_full_path(*paths):
    """Join path pieces and collapse ``.`` / ``..`` segments.

    ``["/site", "puppies/../index.html"]`` combines to ``/site/index.html``.
    Pieces are concatenated rather than joined with ``os.path.join`` so a
    piece starting with ``/`` cannot discard the ones before it.
    """
    pieces = [normalize_separators(p) for p in paths if p]
    if not pieces:
        return ""
    combined = posixpath.normpath("/".join(pieces))
    # normpath keeps a leading "//"; only a UNC-style first piece may have one
    if combined.startswith("//") and not pieces[0].startswith("//"):
        combined = combined[1:]
    return combined


def _segments(path):
    return [s for s in path.split("/") if s]


def is_contained(root, path):
    """True when *root*'s segments are a prefix of *path*'s segments.

    ``/site-evil`` is not inside ``/site`` even though the strings share a prefix.
    Both arguments must already be canonical (see :func:`combine_to_full_path`).
    """
    if path.startswith("/") != root.startswith("/"):
        return False
    root_parts = _segments(root)
    path_parts = _segments(path)
    return path_parts[:len(root_parts)] == root_parts


def resolve(root, request_path):
    """Translate *request_path* into an absolute path under *root*.

    Returns the canonical path, or ``None`` when the request is denied:
    it escapes the root, it is not valid percent-encoded UTF-8, or it
    contains a NUL byte. An empty request path resolves to the root.
    """
    try:
        decoded = unquote(request_path or "", errors="strict")
    except UnicodeDecodeError:
        return None
    if "\x00" in decoded:
        return None

    decoded = normalize_separators(decoded)
    if decoded.startswith("/"):
        decoded = decoded[1:]

    canonical_root = combine_to_full_path(root)
    resolved = combine_to_full_path(canonical_root, decoded)
    if not is_contained(canonical_root, resolved):
        return None
    return resolved
