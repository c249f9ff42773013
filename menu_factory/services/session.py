"""Session storage for carrying dialog position across stateless requests.

A session record is keyed by the gateway's session id and holds arbitrary
user key/value pairs plus the name of the last visited state. The last
visited state lives under a reserved key that user code can never read or
write: every public accessor rejects keys in the reserved namespace.
"""

import threading
import zlib
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from menu_factory.config import settings
from menu_factory.exceptions import ReservedSessionKey
from menu_factory.services.session_locks import SessionLocks
from menu_factory.utils.logger import log

# Engine-owned key namespace. Keys with this prefix are rejected from user code.
RESERVED_KEY_PREFIX = "__menu_factory__:"
PREVIOUS_STATE_KEY = RESERVED_KEY_PREFIX + "previous_state"


def is_reserved_key(key: str) -> bool:
    """Check if a session key belongs to the engine's namespace."""
    return key.startswith(RESERVED_KEY_PREFIX)


class Session(ABC):
    """Session capability. Implement the four storage primitives to plug in a backend.

    Subclasses implement ``start``, ``end``, ``_read`` and ``_write``. The
    public ``get``/``set`` and the previous-state accessors are built on top
    of them, which keeps the reserved key out of reach of user code for every
    backend.
    """

    def __init__(self, start_state_name: Optional[str] = None):
        """Initialize session handler.

        Args:
            start_state_name: Name reserved for the start state. Returned as the
                previous state of any session with no history.
        """
        self.start_state_name = start_state_name or settings.start_state_name
        # Shared by every Menu using this store, so a session id is serialized across menus
        self.locks = SessionLocks()

    @abstractmethod
    async def start(self, session_id: str) -> None:
        """Create the session record if absent. Never clobbers an existing record."""

    @abstractmethod
    async def end(self, session_id: str) -> None:
        """Delete the session record."""

    @abstractmethod
    async def _read(self, session_id: str, key: str) -> Any:
        """Backend read. Returns None when the session or key is absent."""

    @abstractmethod
    async def _write(self, session_id: str, key: str, value: Any) -> None:
        """Backend write."""

    async def set(self, session_id: str, key: str, value: Any) -> None:
        """Store a key-value pair in the session.

        Raises:
            ReservedSessionKey: If key is in the engine's namespace
        """
        if is_reserved_key(key):
            raise ReservedSessionKey(key)
        await self._write(session_id, key, value)

    async def get(self, session_id: str, key: str, default: Any = None) -> Any:
        """Retrieve a value from the session.

        Raises:
            ReservedSessionKey: If key is in the engine's namespace
        """
        if is_reserved_key(key):
            raise ReservedSessionKey(key)
        value = await self._read(session_id, key)
        return default if value is None else value

    async def get_previous_state_name(self, session_id: str) -> str:
        """Name of the last visited state, or the start state name if there is none."""
        name = await self._read(session_id, PREVIOUS_STATE_KEY)
        return name if name is not None else self.start_state_name

    async def set_previous_state_name(self, session_id: str, name: str) -> None:
        """Record the last visited state."""
        await self._write(session_id, PREVIOUS_STATE_KEY, name)


class InMemorySession(Session):
    """Process-local session store.

    Records are partitioned across a fixed number of shards, each guarded by
    its own lock, so unrelated sessions rarely contend. There is no expiry:
    records live until ``end`` is called.
    """

    def __init__(self, start_state_name: Optional[str] = None, shards: Optional[int] = None):
        """Initialize in-memory store.

        Args:
            start_state_name: Name reserved for the start state
            shards: Number of lock partitions (defaults to settings.session_lock_shards)
        """
        super().__init__(start_state_name)
        shard_count = max(1, shards or settings.session_lock_shards)
        self._shards: List[Dict[str, Dict[str, Any]]] = [{} for _ in range(shard_count)]
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(shard_count)]

    def _shard(self, session_id: str) -> int:
        # crc32 instead of hash() so shard placement is stable across processes
        return zlib.crc32(session_id.encode("utf-8")) % len(self._shards)

    async def start(self, session_id: str) -> None:
        idx = self._shard(session_id)
        with self._locks[idx]:
            if session_id not in self._shards[idx]:
                self._shards[idx][session_id] = {}
                log.debug(f"Session {session_id} started")

    async def end(self, session_id: str) -> None:
        idx = self._shard(session_id)
        with self._locks[idx]:
            if self._shards[idx].pop(session_id, None) is not None:
                log.debug(f"Session {session_id} ended")

    async def _read(self, session_id: str, key: str) -> Any:
        idx = self._shard(session_id)
        with self._locks[idx]:
            record = self._shards[idx].get(session_id)
            return None if record is None else record.get(key)

    async def _write(self, session_id: str, key: str, value: Any) -> None:
        idx = self._shard(session_id)
        with self._locks[idx]:
            self._shards[idx].setdefault(session_id, {})[key] = value

    def __contains__(self, session_id: str) -> bool:
        idx = self._shard(session_id)
        with self._locks[idx]:
            return session_id in self._shards[idx]

    def __len__(self) -> int:
        return sum(len(shard) for shard in self._shards)
