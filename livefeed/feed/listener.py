from __future__ import annotations

from typing import Protocol

from rich.console import Console

from ..errors import FeedError
from .types import Direction, MergeResult, Message, MessageState


class FeedListener(Protocol):
    def on_batch_merged(self, result: MergeResult) -> None: ...

    def on_unread_changed(self, count: int) -> None: ...

    def on_send_succeeded(self, message: Message) -> None: ...

    def on_send_failed(self, message: Message, error: FeedError) -> None: ...

    def on_remove_failed(self, message: Message, error: FeedError) -> None: ...

    def on_sync_error(self, direction: Direction, error: FeedError) -> None: ...


class NullListener:
    def on_batch_merged(self, result: MergeResult) -> None:
        return

    def on_unread_changed(self, count: int) -> None:
        return

    def on_send_succeeded(self, message: Message) -> None:
        return

    def on_send_failed(self, message: Message, error: FeedError) -> None:
        return

    def on_remove_failed(self, message: Message, error: FeedError) -> None:
        return

    def on_sync_error(self, direction: Direction, error: FeedError) -> None:
        return


def format_message(message: Message) -> str:
    marker = ""
    if message.state is MessageState.PENDING:
        marker = " [dim](sending)[/dim]"
    elif message.state is MessageState.FAILED:
        marker = " [red](failed)[/red]"
    elif not message.read:
        marker = " [yellow]*[/yellow]"
    ident = f"#{message.id}" if message.id is not None else "#-"
    return f"[dim]{ident} {message.created_at}[/dim] [bold]{message.author}[/bold]: {message.content}{marker}"


class ConsoleListener(NullListener):
    """Prints feed changes to a terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def on_batch_merged(self, result: MergeResult) -> None:
        for message in result.inserted:
            self.console.print(format_message(message))
        for message in result.replaced:
            self.console.print(f"[cyan]edited[/cyan] {format_message(message)}")
        for message in result.removed:
            self.console.print(f"[magenta]removed[/magenta] #{message.id}")

    def on_unread_changed(self, count: int) -> None:
        if count:
            self.console.print(f"[yellow]{count} unread[/yellow]")

    def on_send_failed(self, message: Message, error: FeedError) -> None:
        self.console.print(f"[red]Send failed:[/red] {error}")

    def on_remove_failed(self, message: Message, error: FeedError) -> None:
        self.console.print(f"[red]Delete of #{message.id} failed:[/red] {error}")

    def on_sync_error(self, direction: Direction, error: FeedError) -> None:
        self.console.print(f"[red]{direction.value} sync failed:[/red] {error}")
