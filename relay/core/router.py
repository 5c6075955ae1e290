"""Routing decisions for chat events."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from relay.core.activity import ActivityFeed
from relay.core.exceptions import NotRegisteredError
from relay.core.message_log import MessageLog
from relay.core.registry import Registry
from relay.models.client import ClientRecord, TransportHandle, TransportKind

logger = logging.getLogger(__name__)

RECIPIENT_UNAVAILABLE = "Recipient not found or offline"


@dataclass(frozen=True)
class Outbound:
    """One event addressed to one recipient."""

    payload: Dict[str, Any]
    # None addresses the connection or request the inbound event came from
    to: Optional[str] = None


class Router:
    """
    Maps an inbound event and the current Registry state to outbound events.

    The router keeps no state of its own and never touches a transport: it
    returns Outbound values and leaves delivery to the calling adapter.
    """

    def __init__(self, registry: Registry, message_log: MessageLog,
                 activity: Optional[ActivityFeed] = None):
        self.registry = registry
        self.message_log = message_log
        self.activity = activity or ActivityFeed()

    async def join(self, client_id: str, nickname: Optional[str] = None,
                   transport: TransportKind = TransportKind.PUSH,
                   handle: Optional[TransportHandle] = None) -> List[Outbound]:
        """Register a client, confirm to it and announce it to everyone else."""
        count = await self.registry.upsert(client_id, nickname, transport, handle)
        record = await self.registry.get(client_id)
        nickname = record.nickname if record else nickname
        logger.info(f"{nickname} ({client_id}) joined via {transport.value}. Total clients: {count}")
        self.activity.publish("joined", id=client_id, nickname=nickname, clientsOnline=count)

        outbound = [Outbound({
            "type": "joined",
            "id": client_id,
            "nickname": nickname,
            "clientsOnline": count
        })]
        outbound.extend(await self._broadcast({
            "type": "user_joined",
            "nickname": nickname,
            "clientsOnline": count
        }, exclude=client_id))
        return outbound

    async def chat(self, sender_id: str, text: str, nickname: Optional[str] = None,
                   retain: bool = False) -> List[Outbound]:
        """
        Broadcast a chat message to every client except the sender.

        Args:
            sender_id: ID of the sending client
            text: Message text
            nickname: Display name overriding the registered nickname
            retain: Also append the message to the log served to polling clients

        Raises:
            NotRegisteredError: If the sender has not joined
        """
        sender = await self._require(sender_id)
        await self.registry.touch(sender_id)
        display_name = nickname or sender.nickname
        logger.info(f"{display_name}: {text}")

        if retain:
            message = self.message_log.append(display_name, sender_id, text)
        else:
            message = None
        timestamp = message.timestamp if message else self.message_log.next_timestamp()

        return await self._broadcast({
            "type": "chat",
            "from": display_name,
            "fromId": sender_id,
            "text": text,
            "timestamp": timestamp
        }, exclude=sender_id)

    async def private(self, sender_id: str, to_id: str, text: str) -> List[Outbound]:
        """Deliver a message to one client, confirming or failing back to the sender."""
        sender = await self._require(sender_id)
        recipient = await self.registry.get(to_id)
        if recipient is None or not recipient.is_reachable:
            logger.info(f"Private message from {sender.nickname} to {to_id} undeliverable")
            return [Outbound({"type": "error", "message": RECIPIENT_UNAVAILABLE})]

        return [
            Outbound({
                "type": "private",
                "from": sender.nickname,
                "fromId": sender_id,
                "text": text,
                "timestamp": self.message_log.next_timestamp()
            }, to=to_id),
            Outbound({
                "type": "private_sent",
                "to": recipient.nickname,
                "text": text
            })
        ]

    async def list_users(self, sender_id: str) -> List[Outbound]:
        await self._require(sender_id)
        users = [record.to_summary() for record in await self.registry.all()]
        return [Outbound({"type": "user_list", "users": users})]

    async def disconnect(self, client_id: str, handle: Optional[TransportHandle] = None) -> List[Outbound]:
        """
        Remove a client after an explicit quit or a transport close.

        When ``handle`` is given, the record is only removed if it still
        belongs to that handle, so the close of a superseded connection does
        not evict a client that re-joined with the same id.
        """
        predicate = (lambda record: record.handle is handle) if handle is not None else None
        record = await self.registry.remove(client_id, predicate)
        if record is None:
            return []
        return await self.departed(record, reason="left")

    async def departed(self, record: ClientRecord, reason: str, announce: bool = True) -> List[Outbound]:
        """Report a removed client and build the leave notice for the rest."""
        count = await self.registry.count()
        logger.info(f"{record.nickname} ({record.id}) {reason}. Total clients: {count}")
        self.activity.publish(reason, id=record.id, nickname=record.nickname, clientsOnline=count)
        if not announce:
            return []
        return await self._broadcast({
            "type": "user_left",
            "nickname": record.nickname,
            "clientsOnline": count
        })

    async def _require(self, client_id: Optional[str]) -> ClientRecord:
        record = await self.registry.get(client_id) if client_id else None
        if record is None:
            raise NotRegisteredError(client_id)
        return record

    async def _broadcast(self, payload: Dict[str, Any], exclude: Optional[str] = None) -> List[Outbound]:
        """Address a payload to every push-capable client except ``exclude``."""
        return [
            Outbound(payload, to=record.id)
            for record in await self.registry.all()
            if record.id != exclude and record.handle is not None
        ]
