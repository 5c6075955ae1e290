"""Push transport: one long-lived WebSocket per client."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from relay.core.exceptions import NotRegisteredError, ProtocolError, UnknownEventError
from relay.core.registry import Registry
from relay.core.router import Outbound, Router
from relay.models.client import TransportHandle, TransportKind
from relay.models.event import (
    ChatEvent, InboundEvent, JoinEvent, ListUsersEvent, PrivateEvent, parse_event
)
from relay.transports.base import Transport

logger = logging.getLogger(__name__)

INVALID_FORMAT = "Invalid message format"
NOT_REGISTERED = "Not registered"


class WebSocketHandle(TransportHandle):
    """Writes JSON events to a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket, send_timeout: float = 5.0):
        self.websocket = websocket
        self.send_timeout = send_timeout

    @property
    def is_open(self) -> bool:
        return (self.websocket.client_state == WebSocketState.CONNECTED
                and self.websocket.application_state == WebSocketState.CONNECTED)

    async def send(self, payload: Dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        try:
            await asyncio.wait_for(self.websocket.send_text(json.dumps(payload)), self.send_timeout)
            return True
        except Exception as e:
            logger.warning(f"Failed to send {payload.get('type')!r} event: {str(e)}")
            return False


class PushSession:
    """Per-connection state: the handle and the id it joined as."""

    def __init__(self, handle: WebSocketHandle):
        self.handle = handle
        self.client_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"PushSession(client_id={self.client_id!r})"


class PushTransport(Transport):
    """Event-driven adapter delivering every outbound event immediately."""

    kind = TransportKind.PUSH
    supports_private = True
    supports_presence = True

    def __init__(self, registry: Registry, router: Router,
                 send_timeout: float = 5.0, retain_chat: bool = False):
        super().__init__(registry, router)
        self.send_timeout = send_timeout
        self.retain_chat = retain_chat

    async def serve(self, websocket: WebSocket) -> None:
        """
        Run one client connection until it closes.

        Args:
            websocket: Freshly opened WebSocket connection
        """
        await websocket.accept()
        session = PushSession(WebSocketHandle(websocket, self.send_timeout))
        logger.info("New connection attempt")

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    # Binary frames carry the same JSON payloads
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                await self.handle_message(session, raw)
        except WebSocketDisconnect:
            logger.info(f"Connection for {session.client_id or 'unjoined client'} closed")
        except Exception as e:
            logger.error(f"WebSocket error for {session.client_id or 'unjoined client'}: {str(e)}")
        finally:
            await self.close(session)

    async def handle_message(self, session: PushSession, raw: str) -> None:
        """Decode one frame, route it and deliver the results."""
        try:
            event = parse_event(raw)
        except UnknownEventError as e:
            logger.warning(f"Ignoring message from {session.client_id}: {str(e)}")
            return
        except ProtocolError as e:
            logger.warning(f"Malformed message from {session.client_id}: {str(e)}")
            await session.handle.send({"type": "error", "message": INVALID_FORMAT})
            return

        try:
            outbound = await self.route(session, event)
        except NotRegisteredError:
            outbound = [Outbound({"type": "error", "message": NOT_REGISTERED})]
        await self.deliver(outbound, reply=session.handle)

    async def route(self, session: PushSession, event: InboundEvent) -> List[Outbound]:
        if isinstance(event, JoinEvent):
            outbound = []
            if session.client_id is not None and session.client_id != event.client_id:
                # Re-join under a new id: the old identity leaves first
                outbound.extend(await self.router.disconnect(session.client_id, session.handle))
            session.client_id = event.client_id
            outbound.extend(await self.router.join(
                event.client_id, event.nickname, TransportKind.PUSH, session.handle
            ))
            return outbound

        if session.client_id is not None:
            await self.registry.touch(session.client_id)
        if isinstance(event, ChatEvent):
            return await self.router.chat(session.client_id, event.text, retain=self.retain_chat)
        elif isinstance(event, PrivateEvent):
            return await self.router.private(session.client_id, event.to_id, event.text)
        elif isinstance(event, ListUsersEvent):
            return await self.router.list_users(session.client_id)
        logger.warning(f"No route for {event!r}")
        return []

    async def close(self, session: PushSession) -> None:
        """Disconnect the session's client, announcing its departure."""
        if session.client_id is None:
            return
        outbound = await self.router.disconnect(session.client_id, session.handle)
        await self.deliver(outbound)
