"""Per-session mutual exclusion for request handling.

Requests for the same session id are serialized; requests for different
session ids never wait on each other. Locks are created on first use and
dropped as soon as nobody holds or waits for them, so the table only grows
with the number of in-flight sessions.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List


class SessionLocks:
    """Table of asyncio locks keyed by session id."""

    def __init__(self):
        # session_id -> [lock, holders + waiters]
        self._locks: Dict[str, List] = {}

    @asynccontextmanager
    async def acquire(self, session_id: str) -> AsyncIterator[None]:
        """Hold the lock for a session for the duration of the block.

        Usage:
            async with session_locks.acquire(request.session_id):
                ...
        """
        entry = self._locks.get(session_id)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._locks[session_id] = entry
        entry[1] += 1

        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0 and self._locks.get(session_id) is entry:
                del self._locks[session_id]

    def is_locked(self, session_id: str) -> bool:
        """Check if a request for this session is currently being handled."""
        entry = self._locks.get(session_id)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        return len(self._locks)
