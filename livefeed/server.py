from __future__ import annotations

import contextlib
import logging
import socket
import threading
from http.server import HTTPServer
from pathlib import Path

from .feed_api import build_feed_handler
from .log_store import MessageLog

logger = logging.getLogger(__name__)


def _make_server(host: str, port: int, db_path: Path | None) -> HTTPServer:
    handler = build_feed_handler(db_path)

    class Server(HTTPServer):
        address_family = socket.AF_INET6 if ":" in host else socket.AF_INET

        def server_bind(self) -> None:
            if self.address_family == socket.AF_INET6:
                with contextlib.suppress(OSError):
                    self.socket.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
            super().server_bind()

    return Server((host, port), handler)


def start_feed_server(
    host: str, port: int, *, db_path: Path | None = None
) -> tuple[HTTPServer, threading.Thread]:
    """Serve the feed API on a background thread; port 0 picks a free port."""
    if db_path is not None:
        # Create the schema up front so the first request does not race it.
        MessageLog(db_path).close()
    server = _make_server(host, port, db_path)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    logger.info("feed server listening on %s:%s", host, server.server_address[1])
    return server, thread


def run_feed_server(
    host: str,
    port: int,
    *,
    db_path: Path | None = None,
    stop_event: threading.Event | None = None,
) -> None:
    server, thread = start_feed_server(host, port, db_path=db_path)
    stop = stop_event or threading.Event()
    try:
        while not stop.wait(0.5):
            if not thread.is_alive():
                break
    finally:
        server.shutdown()
        server.server_close()
