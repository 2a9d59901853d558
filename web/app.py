"""Flask transport: turns HTTP requests into core responses and streams them out."""
import logging
import sys
import threading
from urllib.parse import quote

from flask import Flask, Response, request
from loguru import logger
from werkzeug.http import http_date

from config import LOG_LEVEL, LOGS_DIR, STREAM_CHUNK_SIZE
from core.auto_refresh import OperationCancelled
from core.request_handler import RequestHandler
from core.responses import error_response


def setup_logging(level=LOG_LEVEL, log_dir=LOGS_DIR):
    """Configure loguru stderr logging, plus a rotating file when *log_dir* is set."""
    # Remove default handler
    logger.remove()
    logger.add(sys.stderr, level=level, format="{time:HH:mm:ss} | {level: <8} | {message}")
    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / "dev-server.log"),
            level="DEBUG",
            rotation="5 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )
    # We log requests ourselves (and skip the auto-refresh poll); silence werkzeug's access log
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


class _ChunkSink:
    """Writable stream that collects chunks for a WSGI body iterator."""

    def __init__(self):
        self.chunks = []

    def write(self, data):
        self.chunks.append(bytes(data))
        return len(data)

    def flush(self):
        pass


def _request_path():
    """The request path exactly as the client sent it, still percent-encoded."""
    raw = request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI")
    if not raw:
        return quote(request.path)
    if raw.startswith(("http://", "https://")):
        raw = "/" + raw.split("://", 1)[1].partition("/")[2]
    return raw.split("?", 1)[0].split("#", 1)[0]


def _stream_body(response, auto_refresh, cancel_event):
    """Yield the body in chunks, then the reload script when enabled.

    Stops early once *cancel_event* is set. Always closes the body.
    """
    body = response.body
    try:
        for chunk in iter(lambda: body.read(STREAM_CHUNK_SIZE), b""):
            if cancel_event.is_set():
                logger.debug("Response write cancelled")
                return
            yield chunk
        if auto_refresh is not None:
            sink = _ChunkSink()
            try:
                auto_refresh.append_auto_refresh_javascript(response, sink, cancel_event)
            except OperationCancelled:
                logger.debug("Response write cancelled")
                return
            yield from sink.chunks
    finally:
        body.close()


def create_app(root, auto_refresh=None, fs=None, cancel_event=None):
    """Build the Flask app serving *root*.

    *auto_refresh* is an ``AutoRefresh`` instance, or None to disable it.
    *cancel_event* is the server-wide cancel signal shared with the listener.
    """
    app = Flask(__name__, static_folder=None)
    app.url_map.merge_slashes = False
    app.request_handler = RequestHandler(root, fs)
    app.auto_refresh = auto_refresh
    app.cancel_event = cancel_event or threading.Event()

    def generate_response(path):
        if app.auto_refresh is not None and path == app.auto_refresh.endpoint:
            # polled constantly, so never logged
            return app.auto_refresh.send_poll_response()
        logger.info("HTTP {} {}", request.method, path)
        return app.request_handler.generate_response(path)

    def serve_request():
        url = _request_path()
        try:
            response = generate_response(url)
        except Exception as e:
            logger.exception("Failed to generate response for {}", url)
            response = error_response(e)

        headers = dict(response.headers)
        headers["Date"] = http_date()
        flask_response = Response(
            _stream_body(response, app.auto_refresh, app.cancel_event),
            status=response.status_code,
            headers=headers,
            content_type=f"{response.content_type}; charset=utf-8",
        )
        # HEAD requests never iterate the body
        flask_response.call_on_close(response.body.close)
        return flask_response

    # Routing would redirect paths like "//x" before any view runs, so GET/HEAD
    # are answered here for every path. Other methods fall through to the rules
    # below and get a 405.
    @app.before_request
    def _serve_any_path():
        if request.method in ("GET", "HEAD"):
            return serve_request()
        return None

    @app.route("/", defaults={"path": ""}, methods=["GET", "HEAD"])
    @app.route("/<path:path>", methods=["GET", "HEAD"], strict_slashes=False)
    def serve(path):
        return serve_request()

    return app
