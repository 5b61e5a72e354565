from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ..errors import FeedError
from .gate import RequestGate
from .listener import FeedListener, NullListener
from .reconcile import Reconciler
from .state import Feed
from .types import Direction, MergeResult

if TYPE_CHECKING:
    from ..sync.feed_client import FeedClient, FeedPage

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_PAGE_SIZE = 50
DEFAULT_PROXIMITY_PX = 300


class SyncScheduler:
    """Forward polling on a timer, backward paging on viewport proximity.

    Each direction is Idle or Fetching; the request gate keeps at most one
    request per direction in flight. Errors are logged and reported to the
    listener, and nothing is retried until the next tick or proximity signal.
    """

    def __init__(
        self,
        feed: Feed,
        client: FeedClient,
        reconciler: Reconciler,
        *,
        gate: RequestGate | None = None,
        listener: FeedListener | None = None,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        page_size: int = DEFAULT_PAGE_SIZE,
        proximity_px: int = DEFAULT_PROXIMITY_PX,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.feed = feed
        self.client = client
        self.reconciler = reconciler
        self.gate = gate or RequestGate()
        self.listener: FeedListener = listener or NullListener()
        self.poll_interval_s = poll_interval_s
        self.page_size = page_size
        self.proximity_px = proximity_px
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def poll_forward(self) -> MergeResult | None:
        with self.gate.hold(Direction.FORWARD) as acquired:
            if not acquired:
                logger.debug("forward poll already in flight for %s", self.feed.room)
                return None
            after = self.feed.cursors.after
            try:
                page = self.client.fetch_after(after, limit=self.page_size)
            except FeedError as exc:
                self._report(Direction.FORWARD, exc)
                return None
            return self._merge(page, Direction.FORWARD, requested=after)

    def load_history(self) -> MergeResult | None:
        cursors = self.feed.cursors
        if cursors.reached_start or cursors.before is None:
            return None
        with self.gate.hold(Direction.BACKWARD) as acquired:
            if not acquired:
                logger.debug("history fetch already in flight for %s", self.feed.room)
                return None
            before = cursors.before
            if before is None or cursors.reached_start:
                return None
            try:
                page = self.client.fetch_before(before, limit=self.page_size)
            except FeedError as exc:
                self._report(Direction.BACKWARD, exc)
                return None
            return self._merge(page, Direction.BACKWARD, requested=before)

    def on_viewport(self, scroll_top: float) -> MergeResult | None:
        if scroll_top < self.proximity_px:
            return self.load_history()
        return None

    def _merge(self, page: FeedPage, direction: Direction, *, requested: int) -> MergeResult:
        result = self.reconciler.merge(
            page.messages,
            direction,
            requested=requested,
            page_size=min(self.page_size, page.limit or self.page_size),
            read_upto=page.read_upto,
        )
        if result.changed:
            logger.debug("%s merge for %s: %s", direction.value, self.feed.room, result.counts())
        return result

    def _report(self, direction: Direction, exc: FeedError) -> None:
        logger.warning("%s sync failed for %s: %s", direction.value, self.feed.room, exc)
        self.listener.on_sync_error(direction, exc)

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Poll forward until the stop event is set, starting immediately."""
        stop = stop_event or self._stop
        self._tick()
        while not stop.wait(self.poll_interval_s):
            self._tick()

    def _tick(self) -> None:
        try:
            self.poll_forward()
        except Exception:
            logger.exception("forward poll crashed for %s", self.feed.room)

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, args=(self._stop,), name=f"livefeed-{self.feed.room}", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
