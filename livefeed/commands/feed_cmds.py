from __future__ import annotations

import threading

import typer
from rich import print
from rich.console import Console

from livefeed.config import LiveFeedConfig
from livefeed.errors import FeedError
from livefeed.feed import ConsoleListener, FeedSession, MessageState
from livefeed.feed.listener import format_message


def _session(cfg: LiveFeedConfig, console: Console | None = None) -> FeedSession:
    return FeedSession.open(cfg, listener=ConsoleListener(console))


def _load_or_exit(session: FeedSession) -> None:
    result = session.scheduler.poll_forward()
    if result is None:
        print(f"[red]Could not reach {session.client.base_url}[/red]")
        raise typer.Exit(code=1)


def watch_cmd(cfg: LiveFeedConfig, *, once: bool, mark_read: bool) -> None:
    session = _session(cfg)
    if once:
        _load_or_exit(session)
        if mark_read:
            session.read_all()
        return
    stop = threading.Event()
    print(f"[green]Watching {cfg.room} at {cfg.base_url} (Ctrl-C to stop)[/green]")
    try:
        session.scheduler.run(stop)
    except KeyboardInterrupt:
        stop.set()
    finally:
        if mark_read:
            session.read_all()


def history_cmd(cfg: LiveFeedConfig, *, pages: int) -> None:
    session = FeedSession.open(cfg)
    _load_or_exit(session)
    for _ in range(pages):
        if session.scheduler.load_history() is None:
            break
    for message in session.feed.messages():
        print(format_message(message))
    if session.feed.cursors.reached_start:
        print("[dim]start of history[/dim]")


def post_cmd(cfg: LiveFeedConfig, content: str) -> None:
    session = FeedSession.open(cfg)
    try:
        message = session.composer.submit_new(content)
    except FeedError as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    if message.state is MessageState.FAILED:
        print("[red]Send failed[/red]")
        raise typer.Exit(code=1)
    print(f"[green]Posted #{message.id}[/green]")


def edit_cmd(cfg: LiveFeedConfig, message_id: int, content: str) -> None:
    session = FeedSession.open(cfg)
    edited = session.composer.submit_edit(message_id, content)
    if edited is None:
        print(f"[red]Edit of #{message_id} failed[/red]")
        raise typer.Exit(code=1)
    print(f"[green]Edited #{message_id}[/green]")


def delete_cmd(cfg: LiveFeedConfig, message_id: int) -> None:
    session = FeedSession.open(cfg)
    _load_or_exit(session)
    if session.feed.get(message_id) is not None:
        if not session.composer.remove(message_id):
            raise typer.Exit(code=1)
        print(f"[green]Deleted #{message_id}[/green]")
        return
    try:
        session.client.delete(message_id)
    except FeedError as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    print(f"[green]Deleted #{message_id}[/green]")


def read_cmd(cfg: LiveFeedConfig) -> None:
    session = FeedSession.open(cfg)
    _load_or_exit(session)
    count = session.feed.unread_count
    if session.read_all():
        print(f"[green]Marked {count} message(s) read[/green]")
    else:
        print("No unread messages")
