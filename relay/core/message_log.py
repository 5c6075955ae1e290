"""Bounded chat log served to polling clients."""

import time
from collections import deque
from typing import Callable, Deque, List, Optional

from relay.models.message import Message


class MessageLog:
    """
    Append-only, timestamp-ordered buffer of chat messages.

    Holds at most ``max_messages`` entries, oldest dropped first. When
    ``max_age`` is set, ``prune`` also drops entries older than that many
    seconds.
    """

    def __init__(self, max_messages: int = 1000, max_age: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_age = max_age
        self._messages: Deque[Message] = deque(maxlen=max_messages)
        self._clock = clock
        self._last_timestamp = 0

    def next_timestamp(self) -> int:
        """Millisecond timestamp strictly greater than any issued before."""
        now = int(self._clock() * 1000)
        self._last_timestamp = max(now, self._last_timestamp + 1)
        return self._last_timestamp

    def append(self, sender: str, sender_id: str, text: str, timestamp: Optional[int] = None) -> Message:
        """Create and retain a message, stamping it if no timestamp is given."""
        if timestamp is None:
            timestamp = self.next_timestamp()
        elif self._messages and timestamp <= self._messages[-1].timestamp:
            raise ValueError(f"Timestamp {timestamp} is not after the last retained message")
        message = Message(sender=sender, sender_id=sender_id, text=text, timestamp=timestamp)
        self._messages.append(message)
        return message

    def since(self, cursor: int) -> List[Message]:
        """Messages with a timestamp strictly after ``cursor``, oldest first."""
        return [m for m in self._messages if m.timestamp > cursor]

    def prune(self) -> int:
        """
        Drop messages older than ``max_age``.

        Returns:
            Number of messages dropped
        """
        if not self.max_age:
            return 0
        cutoff = int((self._clock() - self.max_age) * 1000)
        dropped = 0
        while self._messages and self._messages[0].timestamp < cutoff:
            self._messages.popleft()
            dropped += 1
        return dropped

    def __len__(self) -> int:
        return len(self._messages)
