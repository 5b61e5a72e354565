from __future__ import annotations

import socket
from pathlib import Path

import typer
from rich import print

from livefeed.config import LiveFeedConfig
from livefeed.server import run_feed_server


def _port_open(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(0.2)
        try:
            return sock.connect_ex((host, port)) == 0
        except OSError:
            return False


def _normalize_check_host(host: str) -> str:
    if host in {"0.0.0.0", "::", "::0"}:
        return "127.0.0.1"
    return host


def serve_cmd(cfg: LiveFeedConfig, *, host: str | None, port: int | None) -> None:
    bind_host = host or cfg.server_host
    bind_port = port if port is not None else cfg.server_port
    if _port_open(_normalize_check_host(bind_host), bind_port):
        print(f"[yellow]Something is already listening on {bind_host}:{bind_port}[/yellow]")
        raise typer.Exit(code=1)
    db_path = Path(cfg.db_path).expanduser()
    print(f"[green]Feed server running at http://{bind_host}:{bind_port} ({db_path})[/green]")
    try:
        run_feed_server(bind_host, bind_port, db_path=db_path)
    except KeyboardInterrupt:
        print("[dim]stopped[/dim]")
