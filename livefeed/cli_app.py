from __future__ import annotations

import json

import typer
from rich import print

from . import __version__
from .commands.common import configure_logging, resolve_config
from .commands.feed_cmds import (
    delete_cmd,
    edit_cmd,
    history_cmd,
    post_cmd,
    read_cmd,
    watch_cmd,
)
from .commands.server_cmds import serve_cmd
from .config import get_config_path, get_env_overrides

app = typer.Typer(help="livefeed: polled chat feed client and dev server")
config_app = typer.Typer(help="Inspect configuration")
app.add_typer(config_app, name="config")

BASE_URL_OPTION = typer.Option(None, "--url", help="Feed server base URL")
ROOM_OPTION = typer.Option(None, "--room", help="Chat room name")
USER_OPTION = typer.Option(None, "--user", help="Local author name")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose)


@app.command()
def watch(
    url: str = BASE_URL_OPTION,
    room: str = ROOM_OPTION,
    user: str = USER_OPTION,
    once: bool = typer.Option(False, help="Fetch once and exit"),
    mark_read: bool = typer.Option(False, "--mark-read", help="Acknowledge on exit"),
) -> None:
    """Poll a room and print new messages."""

    cfg = resolve_config(base_url=url, room=room, user=user)
    watch_cmd(cfg, once=once, mark_read=mark_read)


@app.command()
def history(
    url: str = BASE_URL_OPTION,
    room: str = ROOM_OPTION,
    user: str = USER_OPTION,
    pages: int = typer.Option(1, help="Older pages to load after the newest page"),
) -> None:
    """Print the newest messages plus older pages."""

    cfg = resolve_config(base_url=url, room=room, user=user)
    history_cmd(cfg, pages=pages)


@app.command()
def post(
    content: str = typer.Argument(..., help="Message text"),
    url: str = BASE_URL_OPTION,
    room: str = ROOM_OPTION,
    user: str = USER_OPTION,
) -> None:
    """Send a message."""

    cfg = resolve_config(base_url=url, room=room, user=user)
    post_cmd(cfg, content)


@app.command()
def edit(
    message_id: int = typer.Argument(..., help="Message id"),
    content: str = typer.Argument(..., help="New message text"),
    url: str = BASE_URL_OPTION,
    room: str = ROOM_OPTION,
    user: str = USER_OPTION,
) -> None:
    """Replace the text of one of your messages."""

    cfg = resolve_config(base_url=url, room=room, user=user)
    edit_cmd(cfg, message_id, content)


@app.command()
def delete(
    message_id: int = typer.Argument(..., help="Message id"),
    url: str = BASE_URL_OPTION,
    room: str = ROOM_OPTION,
    user: str = USER_OPTION,
) -> None:
    """Delete one of your messages."""

    cfg = resolve_config(base_url=url, room=room, user=user)
    delete_cmd(cfg, message_id)


@app.command()
def read(
    url: str = BASE_URL_OPTION,
    room: str = ROOM_OPTION,
    user: str = USER_OPTION,
) -> None:
    """Mark everything in the room as read."""

    cfg = resolve_config(base_url=url, room=room, user=user)
    read_cmd(cfg)


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind host"),
    port: int = typer.Option(None, help="Bind port"),
) -> None:
    """Run the development feed server."""

    cfg = resolve_config()
    serve_cmd(cfg, host=host, port=port)


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration."""

    cfg = resolve_config()
    print(f"[dim]config: {get_config_path()}[/dim]")
    overrides = get_env_overrides()
    if overrides:
        print(f"[dim]env overrides: {', '.join(sorted(overrides))}[/dim]")
    print(json.dumps(cfg.to_dict(), indent=2))


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)


def main() -> None:
    app()
