"""Live feed of relay activity for observers of the /logs stream."""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Dict, Set

logger = logging.getLogger(__name__)


class ActivityFeed:
    """Fans activity entries out to every current subscriber."""

    def __init__(self, max_pending: int = 100):
        self.max_pending = max_pending
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, kind: str, **details: Any) -> Dict[str, Any]:
        """
        Record one activity entry.

        Subscribers whose queue is full miss the entry; publishing never waits.
        """
        entry = {"type": kind, "timestamp": int(time.time() * 1000), **details}
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(entry)
            except asyncio.QueueFull:
                logger.warning(f"Activity subscriber lagging, dropped {kind!r} entry")
        return entry

    async def subscribe(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield entries published after subscribing until the consumer stops."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending)
        self._subscribers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)
