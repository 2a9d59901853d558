"""Browser auto-refresh over Server-Sent Events.

Pages served as ``text/html`` get a small script appended that opens an
``EventSource`` on the auto-refresh endpoint and reloads the page on any
message. The endpoint returns whatever events were buffered since the last
poll; ``EventSource`` reconnects on its own after each response, so this
works as a long-poll.

Event framing follows the SSE spec: ``data: <line>`` lines terminated by a
blank line; lines starting with ``:`` are comments the browser ignores.
"""
import threading

from loguru import logger

from config import AUTO_REFRESH_ENDPOINT, KEEP_ALIVE_INTERVAL
from core.responses import string_response

NEWLINE = "\r\n"
REFRESH_EVENT = "data: refresh" + NEWLINE + NEWLINE
KEEP_ALIVE_EVENT = ":stayin' alive" + NEWLINE + NEWLINE


class OperationCancelled(Exception):
    """Raised when work stops because the shared cancel signal fired."""


class AutoRefresh:
    def __init__(self, endpoint=AUTO_REFRESH_ENDPOINT):
        self.endpoint = endpoint
        self.javascript = f"""
<script>
    new EventSource('{endpoint}').onmessage = function(e) {{
        window.location.reload();
    }}
</script>
""".encode("utf-8")
        self._lock = threading.Lock()
        self._events = []

    def _append(self, event):
        with self._lock:
            self._events.append(event)

    def send_client_refresh(self):
        """Tell every polling client to reload the page."""
        self._append(REFRESH_EVENT)

    def _send_keep_alive_notification(self):
        self._append(KEEP_ALIVE_EVENT)

    def send_poll_response(self):
        """Drain the buffered events into a ``text/event-stream`` response.

        Each event is delivered to exactly one poll. An empty buffer gives an
        empty body.
        """
        with self._lock:
            events, self._events = self._events, []
        return string_response("".join(events), "text/event-stream")

    def keep_alive_loop(self, cancel_event, interval=KEEP_ALIVE_INTERVAL):
        """Queue a comment event every *interval* seconds until cancelled.

        Never returns normally: raises :class:`OperationCancelled` once
        *cancel_event* is set, including while waiting between ticks.
        """
        while not cancel_event.wait(interval):
            self._send_keep_alive_notification()
        logger.debug("Keep-alive loop cancelled")
        raise OperationCancelled("keep-alive loop cancelled")

    def append_auto_refresh_javascript(self, response, output_stream, cancel_event=None):
        """Write the reload script to *output_stream* for ``text/html`` responses only."""
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelled("response write cancelled")
        if response.content_type == "text/html":
            output_stream.write(self.javascript)
