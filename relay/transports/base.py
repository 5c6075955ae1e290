"""Shared transport adapter behaviour."""

import asyncio
import logging
from abc import ABC
from typing import Any, Dict, Iterable, List, Optional

from relay.core.registry import Registry
from relay.core.router import Outbound, Router
from relay.models.client import TransportHandle, TransportKind

logger = logging.getLogger(__name__)


class Transport(ABC):
    """
    Base class for adapters between a wire protocol and the Router.

    Subclasses declare which capabilities their clients get; the two
    transports differ on purpose and are not expected to reach parity.
    """

    kind: TransportKind
    supports_private: bool = False
    supports_presence: bool = False

    def __init__(self, registry: Registry, router: Router):
        self.registry = registry
        self.router = router

    async def deliver(self, outbound: Iterable[Outbound], reply: Optional[TransportHandle] = None) -> int:
        """
        Push outbound events to their recipients.

        Events for clients that are gone or whose connection is closed are
        dropped without error; a failing client never stops delivery to the
        others.

        Args:
            outbound: Events produced by the Router
            reply: Handle for events addressed back to the caller

        Returns:
            Number of events actually written
        """
        # Events for one handle keep their order; distinct handles are written concurrently
        queues: Dict[int, List[Dict[str, Any]]] = {}
        handles: Dict[int, TransportHandle] = {}
        for event in outbound:
            if event.to is None:
                handle = reply
            else:
                record = await self.registry.get(event.to)
                handle = record.handle if record else None

            if handle is None or not handle.is_open:
                logger.debug(f"Dropped {event.payload.get('type')!r} event for {event.to or 'caller'}")
                continue
            handles[id(handle)] = handle
            queues.setdefault(id(handle), []).append(event.payload)

        results = await asyncio.gather(*(
            self._send_all(handles[key], payloads) for key, payloads in queues.items()
        ))
        return sum(results)

    @staticmethod
    async def _send_all(handle: TransportHandle, payloads: List[Dict[str, Any]]) -> int:
        sent = 0
        for payload in payloads:
            if await handle.send(payload):
                sent += 1
        return sent
