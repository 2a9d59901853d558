"""Shared test fixtures for pytest suite.

Provides fixtures for:
- memory_fs: In-memory site under /myserver, plus a private file outside it
- handler: RequestHandler over memory_fs
- site_dir: Real on-disk site in a temp directory
- auto_refresh: Fresh AutoRefresh notifier
- app: Flask transport app serving site_dir with auto-refresh enabled
- client: Flask test client for app
"""
import threading

import pytest

from core.auto_refresh import AutoRefresh
from core.filesystem import MemoryFileSystem
from core.request_handler import RequestHandler
from web.app import create_app


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_fs():
    """In-memory tree mirroring a small blog."""
    return MemoryFileSystem({
        "/myserver/index.html": "Welcome to my blog",
        "/myserver/puppies.html": "this a page about my puppies",
        "/myserver/puppies/fido.jpg": b"",
        "/myserver/puppies/boxer.jpg": b"",
        "/myserver/puppies/pogo.jpg": b"",
        "/myserver-evil/secret.txt": "sibling directory",
        "/private.txt": "the password is passw0rd",
    })


@pytest.fixture
def handler(memory_fs):
    return RequestHandler("/myserver/", memory_fs)


@pytest.fixture
def auto_refresh():
    return AutoRefresh()


# ---------------------------------------------------------------------------
# On-disk fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def site_dir(tmp_path):
    """Create a real web root with an index page and a listing-only directory."""
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_text("Hello World")
    (root / "data.json").write_text('{"ok": true}')
    fruits = root / "fruits"
    fruits.mkdir()
    for name in ("apple", "pineapple", "tomato"):
        (fruits / f"{name}.txt").write_text(name)
    (tmp_path / "private.txt").write_text("outside the root")
    return root


# ---------------------------------------------------------------------------
# Flask app fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def cancel_event():
    return threading.Event()


@pytest.fixture
def app(site_dir, auto_refresh, cancel_event):
    application = create_app(str(site_dir), auto_refresh=auto_refresh, cancel_event=cancel_event)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()
