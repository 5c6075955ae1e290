"""Message model for chat utterances retained for polling clients."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Message:
    """One chat message. Never mutated after creation."""

    sender: str
    sender_id: str
    text: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to its wire representation."""
        return {
            'from': self.sender,
            'fromId': self.sender_id,
            'text': self.text,
            'timestamp': self.timestamp
        }
