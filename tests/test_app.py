"""Tests for the Flask transport: routing, headers, streaming and injection.

Run: pytest tests/test_app.py -v
Markers: api
"""
import html
import re

import pytest
from loguru import logger

from config import STREAM_CHUNK_SIZE
from core.filesystem import LocalFileSystem, MemoryFileSystem
from web.app import create_app

pytestmark = [pytest.mark.api]


class TestServing:
    def test_index_with_injected_script(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.data.startswith(b"Hello World")
        assert b"window.location.reload" in r.data

    def test_content_type_has_charset(self, client):
        r = client.get("/index.html")
        assert r.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_date_and_last_modified_headers(self, client):
        r = client.get("/index.html")
        assert r.headers["Date"].endswith("GMT")
        assert r.headers["Last-Modified"].endswith("GMT")

    def test_non_html_is_not_injected(self, client):
        r = client.get("/data.json")
        assert r.status_code == 200
        assert r.data == b'{"ok": true}'
        assert r.headers["Content-Type"] == "application/json; charset=utf-8"

    def test_directory_listing(self, client):
        r = client.get("/fruits/")
        text = r.get_data(as_text=True)
        assert "Directory Listing" in text
        for name in ("apple", "pineapple", "tomato"):
            assert f"/fruits/{name}.txt" in text

    def test_missing_file_is_404(self, client):
        r = client.get("/missing.html")
        assert r.status_code == 404
        assert r.data.startswith(b"Not Found")

    def test_encoded_traversal_is_404(self, client):
        r = client.get("/%2e%2e/private.txt")
        assert r.status_code == 404
        assert b"outside the root" not in r.data

    def test_percent_encoded_name(self, client, site_dir):
        (site_dir / "my page.txt").write_text("spaced")
        r = client.get("/my%20page.txt")
        assert r.status_code == 200
        assert r.data == b"spaced"

    def test_head_request_has_no_body(self, client):
        r = client.head("/index.html")
        assert r.status_code == 200
        assert r.data == b""

    def test_post_not_allowed(self, client):
        assert client.post("/index.html").status_code == 405

    def test_listing_links_resolve_for_reserved_characters(self, client, site_dir):
        odd = site_dir / "odd"
        odd.mkdir()
        names = {"a#b.txt": "hash", "50%.txt": "percent", "q?.txt": "question"}
        for name, text in names.items():
            (odd / name).write_text(text)

        listing = client.get("/odd/").get_data(as_text=True)
        hrefs = [html.unescape(h) for h in re.findall(r"href='([^']*)'", listing)]
        assert len(hrefs) == 3
        served = {}
        for href in hrefs:
            r = client.get(href)
            assert r.status_code == 200, href
            served[r.data.decode()] = href
        assert set(served) == set(names.values())

    def test_double_slash_path_is_served(self, client):
        r = client.get("/index.html", environ_overrides={
            "PATH_INFO": "//index.html",
            "RAW_URI": "//index.html",
            "REQUEST_URI": "//index.html",
        })
        assert r.status_code == 200
        assert r.data.startswith(b"Hello World")

    def test_double_slash_post_not_allowed(self, client):
        r = client.post("/index.html", environ_overrides={"PATH_INFO": "//index.html"})
        assert r.status_code != 200

    def test_memory_filesystem_app(self):
        fs = MemoryFileSystem({"/site/index.html": "from memory"})
        r = create_app("/site", fs=fs).test_client().get("/")
        assert r.data == b"from memory"


class TestAutoRefreshEndpoint:
    def test_poll_returns_buffered_events(self, client, app):
        app.auto_refresh.send_client_refresh()
        r = client.get("/dev-server-auto-refresh")
        assert r.status_code == 200
        assert r.headers["Content-Type"] == "text/event-stream; charset=utf-8"
        assert r.data == b"data: refresh\r\n\r\n"

    def test_second_poll_is_empty(self, client, app):
        app.auto_refresh.send_client_refresh()
        client.get("/dev-server-auto-refresh")
        assert client.get("/dev-server-auto-refresh").data == b""

    def test_poll_is_not_logged(self, client, app):
        messages = []
        sink_id = logger.add(messages.append, level="INFO", format="{message}")
        try:
            client.get("/dev-server-auto-refresh")
            client.get("/index.html")
        finally:
            logger.remove(sink_id)

        assert not any("dev-server-auto-refresh" in m for m in messages)
        assert any("HTTP GET /index.html" in m for m in messages)

    def test_disabled_auto_refresh(self, site_dir):
        plain = create_app(str(site_dir)).test_client()
        r = plain.get("/index.html")
        assert r.data == b"Hello World"
        assert plain.get("/dev-server-auto-refresh").status_code == 404


class TestFaults:
    def test_filesystem_error_becomes_500(self, site_dir, monkeypatch):
        def _denied(self, path):
            raise PermissionError("Permission denied")

        monkeypatch.setattr(LocalFileSystem, "open_read", _denied)
        client = create_app(str(site_dir)).test_client()
        r = client.get("/index.html")
        assert r.status_code == 500
        assert r.data == b"ERROR: Permission denied"

    def test_fault_is_isolated_to_one_request(self, site_dir, monkeypatch):
        real_open = LocalFileSystem.open_read

        def _flaky(self, path):
            if path.endswith("data.json"):
                raise OSError("disk on fire")
            return real_open(self, path)

        monkeypatch.setattr(LocalFileSystem, "open_read", _flaky)
        client = create_app(str(site_dir)).test_client()
        assert client.get("/data.json").status_code == 500
        assert client.get("/index.html").status_code == 200


class TestCancellation:
    def test_cancelled_response_stops_streaming(self, app, client, cancel_event):
        cancel_event.set()
        r = client.get("/index.html")
        assert r.data == b""

    def test_cancel_mid_stream_stops_remaining_chunks(self, client, site_dir, cancel_event):
        (site_dir / "big.bin").write_bytes(b"x" * (3 * STREAM_CHUNK_SIZE))
        r = client.get("/big.bin", buffered=False)
        try:
            chunks = iter(r.response)
            first = next(chunks)
            cancel_event.set()
            rest = b"".join(chunks)
        finally:
            r.close()
        assert len(first) == STREAM_CHUNK_SIZE
        assert rest == b""

    def test_uncancelled_large_body_streams_fully(self, client, site_dir):
        (site_dir / "big.bin").write_bytes(b"x" * (3 * STREAM_CHUNK_SIZE))
        r = client.get("/big.bin")
        assert len(r.data) == 3 * STREAM_CHUNK_SIZE
