"""Listener lifecycle for the development server.

One werkzeug threaded server (a thread per connection, unbounded) plus a
keep-alive thread for auto-refresh, all stopped by a single shared
``threading.Event``.

Usage:
    with HttpServer("site", "localhost", 8080, enable_auto_refresh=True) as server:
        server.start()
        ...
        server.send_client_refresh()
"""
import threading

from loguru import logger
from werkzeug.serving import make_server

from config import KEEP_ALIVE_INTERVAL
from core.auto_refresh import AutoRefresh, OperationCancelled
from core.watcher import FileChangeNotifier
from web.app import create_app


class ServerStartError(Exception):
    """The listener could not be started (port in use, bad host, ...)."""


class HttpServer:
    def __init__(self, path, host, port, enable_auto_refresh=False, watch=False,
                 fs=None, keep_alive_interval=KEEP_ALIVE_INTERVAL):
        self.path = path
        self.host = host
        self.port = port
        self.keep_alive_interval = keep_alive_interval
        self.auto_refresh = AutoRefresh() if enable_auto_refresh or watch else None
        self.watch = watch
        self.fs = fs

        self._lock = threading.Lock()
        self._cancel_event = None
        self._server = None
        self._threads = []
        self._watcher = None

    @property
    def is_auto_refresh_enabled(self):
        return self.auto_refresh is not None

    @property
    def is_running(self):
        return self._cancel_event is not None and not self._cancel_event.is_set()

    @property
    def url(self):
        port = self._server.server_port if self._server is not None else self.port
        return f"http://{self.host}:{port}/"

    def start(self, cancel_event=None):
        """Start serving in background threads.

        The server stops when *cancel_event* (if given) is set or when
        :meth:`stop` is called. Raises :class:`ServerStartError` if the
        listener cannot bind.
        """
        with self._lock:
            if self._cancel_event is not None:
                raise RuntimeError("HttpServer already started.")
            self._cancel_event = threading.Event()

        if cancel_event is not None:
            self._spawn(self._link_cancel, cancel_event, name="dev-server-cancel-link")

        app = create_app(self.path, self.auto_refresh, self.fs, self._cancel_event)
        try:
            self._server = make_server(self.host, self.port, app, threaded=True)
        except (OSError, SystemExit) as e:
            # werkzeug exits instead of raising when the port is taken
            logger.error("Could not start listener on {}:{}: {}", self.host, self.port, e)
            self._cancel_event.set()
            raise ServerStartError(f"Could not listen on {self.host}:{self.port}") from e

        self._spawn(self._server.serve_forever, name="dev-server-listener")
        self._spawn(self._shutdown_on_cancel, name="dev-server-shutdown")
        if self.auto_refresh is not None:
            self._spawn(self._run_keep_alive, name="dev-server-keep-alive")
        if self.watch:
            self._watcher = FileChangeNotifier(self.path, self.send_client_refresh)
            self._watcher.start()

        logger.info("Serving {} at {}", self.path, self.url)

    def _spawn(self, target, *args, name=None):
        thread = threading.Thread(target=target, args=args, name=name, daemon=True)
        thread.start()
        self._threads.append(thread)

    def _link_cancel(self, external_event):
        # Wakes every 0.5 s so stop() can join this thread; a linked cancel is
        # observed within that bound.
        while not self._cancel_event.is_set():
            if external_event.wait(0.5):
                self._cancel_event.set()

    def _shutdown_on_cancel(self):
        self._cancel_event.wait()
        logger.info("Shutting down server...")
        self._server.shutdown()

    def _run_keep_alive(self):
        try:
            self.auto_refresh.keep_alive_loop(self._cancel_event, self.keep_alive_interval)
        except OperationCancelled:
            logger.debug("Keep-alive loop stopped")

    def send_client_refresh(self):
        """Tell all connected clients to refresh the page."""
        if self.auto_refresh is not None:
            self.auto_refresh.send_client_refresh()

    def wait(self, timeout=None):
        """Block until the server has been stopped."""
        if self._cancel_event is not None:
            self._cancel_event.wait(timeout)

    def stop(self):
        with self._lock:
            if self._cancel_event is None:
                return
            self._cancel_event.set()
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout=5)
        if self._server is not None:
            self._server.server_close()
            self._server = None
        logger.info("Server stopped")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
