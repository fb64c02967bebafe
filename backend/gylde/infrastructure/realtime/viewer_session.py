"""
Viewer Session

Per-session context for one authenticated viewer. It owns every live
subscription opened on that viewer's behalf and the latest snapshot of each
view, and releases all of them on close (stream end or identity change).
Nothing about a viewer is kept at module level.
"""

import asyncio
import logging
from collections import deque
from typing import Any, AsyncIterator, Callable, Deque, Dict, List, Optional, Tuple

from gylde.infrastructure.realtime.change_feed import (
    Cancel,
    ChangeFeed,
    Topic,
    entitlements_topic,
    grants_topic,
    pending_requests_topic,
    received_topic,
)


logger = logging.getLogger(__name__)

LIVE_VIEWS: Dict[str, Callable[[str], Topic]] = {
    "pendingRequests": pending_requests_topic,
    "grants": grants_topic,
    "received": received_topic,
    "entitlements": entitlements_topic,
}


class ViewerSession:
    """
    Live views keyed by the viewer's identity.

    Updates are coalesced per view: when the consumer falls behind, the
    oldest queued update of a view that has a newer update queued is dropped.
    Updates already queued when the session closes are still delivered.
    """

    def __init__(self, user_id: str, feed: ChangeFeed, max_pending: int = 64):
        self.user_id = user_id
        self._feed = feed
        self._max_pending = max_pending
        self._pending: Deque[Tuple[str, Any]] = deque()
        self._wakeup = asyncio.Event()
        self._cancels: List[Cancel] = []
        self._snapshots: Dict[str, Any] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscription_count(self) -> int:
        return len(self._cancels)

    def open(self) -> "ViewerSession":
        """Subscribe to every live view for this viewer."""
        for view, topic_for in LIVE_VIEWS.items():
            self._cancels.append(self._feed.subscribe(topic_for(self.user_id), self._handler(view)))
        logger.info(f"Opened live session for user {self.user_id}")
        return self

    def seed(self, view: str, payload: Any) -> None:
        """Record the initial state of a view before any change arrives."""
        self._accept(view, payload)

    def snapshot(self, view: str) -> Optional[Any]:
        return self._snapshots.get(view)

    async def events(self) -> AsyncIterator[Tuple[str, Any]]:
        """Yield (view, payload) pairs until the session closes and is drained."""
        while True:
            if self._pending:
                yield self._pending.popleft()
                continue
            if self._closed:
                break
            self._wakeup.clear()
            await self._wakeup.wait()

    def close(self) -> None:
        """Release every subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for cancel in self._cancels:
            cancel()
        self._cancels.clear()
        self._snapshots.clear()
        self._wakeup.set()
        logger.info(f"Closed live session for user {self.user_id}")

    async def __aenter__(self) -> "ViewerSession":
        return self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _handler(self, view: str) -> Callable[[Any], None]:
        def on_change(payload: Any) -> None:
            self._accept(view, payload)
        return on_change

    def _accept(self, view: str, payload: Any) -> None:
        if self._closed:
            return
        self._snapshots[view] = payload
        self._pending.append((view, payload))
        if len(self._pending) > self._max_pending:
            self._drop_superseded()
        self._wakeup.set()

    def _drop_superseded(self) -> None:
        # Oldest entry whose view appears again later in the queue.
        seen = set()
        superseded = None
        for index in range(len(self._pending) - 1, -1, -1):
            view = self._pending[index][0]
            if view in seen:
                superseded = index
            seen.add(view)
        if superseded is None:
            logger.warning(f"Live queue for user {self.user_id} is full of distinct views")
            superseded = 0
        del self._pending[superseded]
