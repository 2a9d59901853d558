"""Shared configuration for the local development server."""
import os
from pathlib import Path

# App version
APP_VERSION = "1.0.0"

# Paths
BASE_DIR = Path(__file__).parent

# Log file directory is opt-in; stderr logging is always on
_log_dir = os.environ.get("DEV_SERVER_LOG_DIR", "")
LOGS_DIR = Path(_log_dir) if _log_dir else None
LOG_LEVEL = os.environ.get("DEV_SERVER_LOG_LEVEL", "INFO")

# Web server
WEB_HOST = os.environ.get("DEV_SERVER_HOST", "localhost")
WEB_PORT = int(os.environ.get("DEV_SERVER_PORT", "8080"))

# Request resolution
INDEX_FILE = "index.html"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
STREAM_CHUNK_SIZE = 81920  # bytes per body write

# Auto-refresh
AUTO_REFRESH_ENDPOINT = "/dev-server-auto-refresh"
KEEP_ALIVE_INTERVAL = float(os.environ.get("DEV_SERVER_KEEP_ALIVE", "60"))  # seconds
WATCH_DEBOUNCE = 0.2  # seconds; bursts of file events collapse into one refresh
