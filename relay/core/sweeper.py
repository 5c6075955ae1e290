"""Periodic removal of dead and timed-out clients."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, List, Optional

from relay.core.message_log import MessageLog
from relay.core.registry import Registry
from relay.core.router import Outbound, Router
from relay.models.client import ClientRecord, TransportKind

logger = logging.getLogger(__name__)

Deliver = Callable[[Iterable[Outbound]], Awaitable[int]]


class LivenessSweeper:
    """
    Two independent pruning policies over one Registry.

    The push policy drops WebSocket clients whose connection closed without
    the close handler running; that path already announced real departures,
    so it stays silent. The poll policy drops polling clients that stopped
    polling, and is the only place such clients are ever removed.
    """

    def __init__(self, registry: Registry, router: Router, deliver: Deliver,
                 push_interval: float = 60.0, poll_interval: float = 30.0,
                 poll_timeout: float = 60.0, announce_poll_timeouts: bool = True,
                 message_log: Optional[MessageLog] = None,
                 clock: Callable[[], float] = time.time):
        self.registry = registry
        self.router = router
        self.deliver = deliver
        self.push_interval = push_interval
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.announce_poll_timeouts = announce_poll_timeouts
        self.message_log = message_log
        self._clock = clock
        self._tasks: List[asyncio.Task] = []

    async def sweep_push(self) -> List[ClientRecord]:
        """Remove WebSocket clients whose connection is no longer open."""
        removed = []
        for record in await self.registry.all():
            try:
                if record.transport is not TransportKind.PUSH or record.is_reachable:
                    continue
                gone = await self.registry.remove(
                    record.id, lambda current: current.handle is record.handle and not current.is_reachable
                )
                if gone is not None:
                    removed.append(gone)
                    await self.router.departed(gone, reason="swept", announce=False)
            except Exception as e:
                logger.error(f"Error sweeping client {record.id}: {str(e)}")
        if removed:
            logger.info(f"Removed {len(removed)} dead connection(s)")
        return removed

    async def sweep_poll(self) -> List[ClientRecord]:
        """Remove polling clients that have not been seen within the timeout."""
        removed = []
        cutoff = self._clock() - self.poll_timeout
        for record in await self.registry.all():
            try:
                if record.transport is not TransportKind.POLL or record.last_seen >= cutoff:
                    continue
                gone = await self.registry.remove(
                    record.id,
                    lambda current: current.transport is TransportKind.POLL and current.last_seen < cutoff
                )
                if gone is None:
                    continue
                removed.append(gone)
                outbound = await self.router.departed(
                    gone, reason="timed_out", announce=self.announce_poll_timeouts
                )
                await self.deliver(outbound)
            except Exception as e:
                logger.error(f"Error sweeping client {record.id}: {str(e)}")

        if self.message_log is not None:
            dropped = self.message_log.prune()
            if dropped:
                logger.info(f"Pruned {dropped} expired message(s)")
        return removed

    async def _run(self, name: str, interval: float, sweep: Callable[[], Awaitable[List[ClientRecord]]]) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                await sweep()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"{name} sweep failed: {str(e)}")

    def start(self) -> None:
        """Start both sweep loops as background tasks."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._run("Push", self.push_interval, self.sweep_push), name="push_sweeper"),
            asyncio.create_task(self._run("Poll", self.poll_interval, self.sweep_poll), name="poll_sweeper"),
        ]
        logger.info(f"Sweepers started (push every {self.push_interval}s, poll every {self.poll_interval}s)")

    async def stop(self) -> None:
        """Cancel the sweep loops and wait for them to finish."""
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
