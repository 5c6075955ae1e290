"""Client model for tracking registered chat participants."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


DEFAULT_NICKNAME = "Anonymous"


class TransportKind(Enum):
    """Transports a client can be registered through."""
    PUSH = "push"
    POLL = "poll"


class TransportHandle(ABC):
    """Transport-specific means of pushing events to one client."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the underlying connection can still accept writes."""

    @abstractmethod
    async def send(self, payload: Dict[str, Any]) -> bool:
        """
        Deliver a payload to the client.

        Returns:
            True if the payload was written, False if it was dropped
        """


@dataclass
class ClientRecord:
    """Represents one registered participant and its liveness."""

    id: str
    nickname: str
    transport: TransportKind
    connected_at: float
    last_seen: float
    handle: Optional[TransportHandle] = None

    @property
    def is_reachable(self) -> bool:
        """Whether events can be pushed to this client right now."""
        return self.handle is not None and self.handle.is_open

    def to_summary(self) -> Dict[str, str]:
        """Public id/nickname pair used in user lists."""
        return {"id": self.id, "nickname": self.nickname}

    def __repr__(self) -> str:
        return f"ClientRecord(id={self.id!r}, nickname={self.nickname!r}, transport={self.transport.value!r})"
