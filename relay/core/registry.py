"""Registry of connected clients keyed by client id."""

import asyncio
import time
from typing import Callable, Dict, List, Optional

from relay.models.client import ClientRecord, DEFAULT_NICKNAME, TransportHandle, TransportKind


class Registry:
    """
    Owns every ClientRecord in the relay.

    Each operation runs under a single lock, so per-connection handlers and
    the periodic sweepers observe one consistent map. Nothing outside this
    class mutates a record.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Args:
            clock: Returns the current time in epoch seconds
        """
        self._clients: Dict[str, ClientRecord] = {}
        self._clock = clock
        self._mutex = asyncio.Lock()

    async def upsert(self, client_id: str, nickname: Optional[str] = None,
                     transport: TransportKind = TransportKind.PUSH,
                     handle: Optional[TransportHandle] = None) -> int:
        """
        Insert a client, or replace the existing record for the same id.

        Returns:
            Number of registered clients after the write
        """
        async with self._mutex:
            now = self._clock()
            self._clients[client_id] = ClientRecord(
                id=client_id,
                nickname=nickname or DEFAULT_NICKNAME,
                transport=transport,
                connected_at=now,
                last_seen=now,
                handle=handle
            )
            return len(self._clients)

    async def touch(self, client_id: str) -> bool:
        """Refresh last_seen for a client. Unknown ids are ignored."""
        async with self._mutex:
            record = self._clients.get(client_id)
            if record is None:
                return False
            record.last_seen = self._clock()
            return True

    async def remove(self, client_id: str,
                     predicate: Optional[Callable[[ClientRecord], bool]] = None) -> Optional[ClientRecord]:
        """
        Delete a client and return its record.

        Args:
            client_id: ID of the client to remove
            predicate: If given, the record is only removed when this returns
                True for it; evaluated under the lock

        Returns:
            The removed record, or None if nothing was removed
        """
        async with self._mutex:
            record = self._clients.get(client_id)
            if record is None:
                return None
            if predicate is not None and not predicate(record):
                return None
            del self._clients[client_id]
            return record

    async def get(self, client_id: str) -> Optional[ClientRecord]:
        async with self._mutex:
            return self._clients.get(client_id)

    async def all(self) -> List[ClientRecord]:
        """Snapshot of all records, in no particular order."""
        async with self._mutex:
            return list(self._clients.values())

    async def count(self) -> int:
        async with self._mutex:
            return len(self._clients)
