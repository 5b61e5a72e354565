from __future__ import annotations


class FeedError(Exception):
    """Base class for recoverable feed synchronization errors."""

    def __init__(self, message: str, *, status: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status = status
        self.code = code


class TransientNetworkError(FeedError):
    """Timeouts, connectivity failures and 5xx responses."""


class ParseFailure(TransientNetworkError):
    """The response body could not be decoded into messages."""


class ServerRejection(FeedError):
    """The server refused the request (validation, permissions)."""


class MissingTarget(FeedError):
    """The message addressed by an edit, delete or refresh no longer exists."""
