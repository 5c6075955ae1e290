"""Polling transport: stateless HTTP requests driven by the client."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from relay.core.message_log import MessageLog
from relay.core.registry import Registry
from relay.core.router import Router
from relay.models.client import TransportKind
from relay.models.message import Message
from relay.transports.base import Transport

logger = logging.getLogger(__name__)


class PollingTransport(Transport):
    """
    Request/response adapter.

    Polling clients are never pushed events: they read the shared message log
    through a timestamp cursor. Private messages are not offered. Their joins,
    chats and departures still reach WebSocket clients through ``deliver``.
    """

    kind = TransportKind.POLL
    supports_private = False
    supports_presence = False

    def __init__(self, registry: Registry, router: Router, message_log: MessageLog):
        super().__init__(registry, router)
        self.message_log = message_log

    async def join(self, client_id: str, nickname: Optional[str] = None) -> int:
        """
        Register a polling client.

        Returns:
            Number of clients online after the join
        """
        outbound = await self.router.join(client_id, nickname, TransportKind.POLL)
        await self.deliver(outbound)
        confirmation = next(event for event in outbound if event.to is None)
        return confirmation.payload["clientsOnline"]

    async def send(self, client_id: str, text: str, nickname: Optional[str] = None) -> None:
        """
        Retain a chat message for pollers and relay it to WebSocket clients.

        Raises:
            NotRegisteredError: If ``client_id`` has not joined or has timed out
        """
        outbound = await self.router.chat(client_id, text, nickname=nickname, retain=True)
        await self.deliver(outbound)

    async def messages(self, since: int = 0, client_id: Optional[str] = None) -> Tuple[List[Message], int]:
        """
        Messages after the ``since`` cursor plus the online count.

        Reading counts as a heartbeat for ``client_id``; the log itself is
        left untouched, so repeating a call with the same cursor returns the
        same messages.
        """
        if client_id:
            await self.registry.touch(client_id)
        return self.message_log.since(since), await self.registry.count()

    async def clients(self) -> List[Dict[str, Any]]:
        return [record.to_summary() for record in await self.registry.all()]
