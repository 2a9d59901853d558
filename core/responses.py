"""HTTP response descriptor with factories for the kinds of responses we serve."""
import io
import mimetypes
import posixpath
from dataclasses import dataclass, field
from typing import BinaryIO, Dict

from werkzeug.http import http_date

from config import DEFAULT_CONTENT_TYPE

# mimetypes falls back to the OS registry; pin the types the server cares about
mimetypes.add_type("text/html", ".html")
mimetypes.add_type("text/html", ".htm")
mimetypes.add_type("text/css", ".css")
mimetypes.add_type("text/javascript", ".js")
mimetypes.add_type("text/javascript", ".mjs")
mimetypes.add_type("application/json", ".json")
mimetypes.add_type("image/svg+xml", ".svg")
mimetypes.add_type("application/wasm", ".wasm")


@dataclass(frozen=True)
class HttpServerResponse:
    """Status, headers, content type and a lazily-read body.

    The body is read exactly once by whoever sends the response, and that
    party is responsible for closing it.
    """
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: BinaryIO = None
    content_type: str = "text/html"


def guess_content_type(path):
    """Content type for *path* based on its extension, never failing."""
    _, ext = posixpath.splitext(path)
    if not ext:
        return DEFAULT_CONTENT_TYPE
    content_type, _ = mimetypes.guess_type("file" + ext.lower(), strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def file_response(fs, file_path):
    """Create a 200 response streaming the file at *file_path*."""
    headers = {"Last-Modified": http_date(fs.get_last_write_time(file_path))}
    content_type = guess_content_type(file_path)
    body = fs.open_read(file_path)
    return HttpServerResponse(200, headers, body, content_type)


def string_response(text, mime_type, status=200):
    """Create a response whose body is *text* encoded as UTF-8."""
    return HttpServerResponse(
        status,
        {},
        io.BytesIO((text or "").encode("utf-8")),
        mime_type,
    )


def html_response(html, status=200):
    return string_response(html, "text/html", status)


def not_found_response():
    return html_response("Not Found", 404)


def error_response(exc):
    """500 response carrying the fault's message."""
    return html_response(f"ERROR: {exc}", 500)
