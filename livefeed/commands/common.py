from __future__ import annotations

import logging
from typing import Any

import typer
from rich import print

from livefeed.config import LiveFeedConfig, load_config, read_config_file


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def resolve_config(
    *,
    base_url: str | None = None,
    room: str | None = None,
    user: str | None = None,
) -> LiveFeedConfig:
    read_config_or_exit()
    cfg = load_config()
    if base_url:
        cfg.base_url = base_url
    if room:
        cfg.room = room
    if user:
        cfg.user = user
    return cfg
