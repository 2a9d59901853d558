#!/usr/bin/env python3
"""Serve a directory over HTTP for local development.

    python serve.py [ROOT] [--host HOST] [--port PORT] [--auto-refresh] [--watch]
"""
import argparse
import signal
import sys
from pathlib import Path

from loguru import logger

from config import APP_VERSION, LOG_LEVEL, LOGS_DIR, WEB_HOST, WEB_PORT
from web.app import setup_logging
from web.server import HttpServer, ServerStartError


def build_parser():
    parser = argparse.ArgumentParser(description="Local static-file server with optional browser auto-refresh")
    parser.add_argument("root", nargs="?", default=".", help="Directory to serve (default: current directory)")
    parser.add_argument("--host", default=WEB_HOST)
    parser.add_argument("--port", type=int, default=WEB_PORT)
    parser.add_argument("--auto-refresh", action="store_true",
                        help="Inject a script into HTML pages that reloads them on refresh events")
    parser.add_argument("--watch", action="store_true",
                        help="Refresh browsers when files under ROOT change (implies --auto-refresh)")
    parser.add_argument("--log-level", default=LOG_LEVEL)
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper(), LOGS_DIR)

    root = Path(args.root).resolve()
    if not root.is_dir():
        logger.error("Root folder does not exist: {}", root)
        return 1

    server = HttpServer(str(root), args.host, args.port,
                        enable_auto_refresh=args.auto_refresh, watch=args.watch)
    try:
        server.start()
    except ServerStartError as e:
        logger.error("{}", e)
        return 1

    def _signal_handler(signum, frame):
        server.stop()

    signal.signal(signal.SIGTERM, _signal_handler)

    print(f"\n  Dev server")
    print(f"  {server.url}")
    if server.is_auto_refresh_enabled:
        print("  Auto-refresh: on")
    print("  Press Ctrl+C to stop\n")

    try:
        while server.is_running:
            server.wait(timeout=1)
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
