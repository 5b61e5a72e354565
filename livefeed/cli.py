from __future__ import annotations

from .cli_app import app, main

__all__ = ["app", "main"]
