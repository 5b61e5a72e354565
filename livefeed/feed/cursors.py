from __future__ import annotations


class CursorStore:
    """Position markers for the loaded window of the feed.

    ``after`` is the newest identity fetched (0 before the first fetch) and only
    moves forward. ``before`` is the oldest identity fetched (``None`` until
    history is known) and only moves backward.
    """

    def __init__(self) -> None:
        self._after = 0
        self._before: int | None = None
        self._reached_start = False

    @property
    def after(self) -> int:
        return self._after

    @property
    def before(self) -> int | None:
        return self._before

    @property
    def reached_start(self) -> bool:
        return self._reached_start

    def advance_after(self, message_id: int) -> bool:
        if message_id <= self._after:
            return False
        self._after = message_id
        return True

    def retreat_before(self, message_id: int) -> bool:
        if self._before is not None and message_id >= self._before:
            return False
        self._before = message_id
        return True

    def mark_reached_start(self) -> None:
        self._reached_start = True

    def snapshot(self) -> dict[str, object]:
        return {
            "after": self._after,
            "before": self._before,
            "reached_start": self._reached_start,
        }
