"""Inbound event models decoded from push-transport frames."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from relay.core.exceptions import ProtocolError, UnknownEventError


class EventType(Enum):
    """Types of events a client can send over the push transport."""
    JOIN = "join"
    CHAT = "chat"
    PRIVATE = "private"
    LIST_USERS = "list_users"


@dataclass
class InboundEvent:
    """Base class for all inbound events."""

    type: EventType


class JoinEvent(InboundEvent):
    """Client registering (or re-registering) an identity."""

    def __init__(self, client_id: str, nickname: Optional[str] = None):
        super().__init__(EventType.JOIN)
        self.client_id = client_id
        self.nickname = nickname

    def __repr__(self) -> str:
        return f"JoinEvent(client_id={self.client_id!r}, nickname={self.nickname!r})"


class ChatEvent(InboundEvent):
    """Broadcast chat message."""

    def __init__(self, text: str):
        super().__init__(EventType.CHAT)
        self.text = text

    def __repr__(self) -> str:
        return f"ChatEvent(text={self.text!r})"


class PrivateEvent(InboundEvent):
    """Message addressed to a single client id."""

    def __init__(self, to_id: str, text: str):
        super().__init__(EventType.PRIVATE)
        self.to_id = to_id
        self.text = text

    def __repr__(self) -> str:
        return f"PrivateEvent(to_id={self.to_id!r}, text={self.text!r})"


class ListUsersEvent(InboundEvent):
    """Request for the list of online users."""

    def __init__(self):
        super().__init__(EventType.LIST_USERS)

    def __repr__(self) -> str:
        return "ListUsersEvent()"


def _require_str(data: Dict[str, Any], field: str, allow_empty: bool = False) -> str:
    value = data.get(field)
    if not isinstance(value, str) or (not value and not allow_empty):
        qualifier = "a string" if allow_empty else "a non-empty string"
        raise ProtocolError(f"Field {field!r} must be {qualifier}")
    return value


def parse_event(raw: str) -> InboundEvent:
    """
    Decode one push-transport frame into an inbound event.

    Args:
        raw: JSON text received from the client

    Raises:
        ProtocolError: If the frame is not a JSON object or lacks required fields
        UnknownEventError: If the frame carries an unrecognised ``type``
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ProtocolError(f"Invalid JSON message: {str(e)}") from e

    if not isinstance(data, dict):
        raise ProtocolError("Message must be a JSON object")

    event_type = data.get('type')
    if event_type == EventType.JOIN.value:
        nickname = data.get('nickname')
        if nickname is not None and not isinstance(nickname, str):
            raise ProtocolError("Field 'nickname' must be a string")
        return JoinEvent(_require_str(data, 'id'), nickname)
    elif event_type == EventType.CHAT.value:
        return ChatEvent(_require_str(data, 'text', allow_empty=True))
    elif event_type == EventType.PRIVATE.value:
        return PrivateEvent(_require_str(data, 'toId'), _require_str(data, 'text', allow_empty=True))
    elif event_type == EventType.LIST_USERS.value:
        return ListUsersEvent()
    else:
        raise UnknownEventError(event_type)
