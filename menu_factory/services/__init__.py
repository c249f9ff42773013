"""Session storage and per-session locking."""

from menu_factory.services.session import (
    PREVIOUS_STATE_KEY,
    RESERVED_KEY_PREFIX,
    InMemorySession,
    Session,
)
from menu_factory.services.session_locks import SessionLocks

__all__ = [
    "Session",
    "InMemorySession",
    "SessionLocks",
    "PREVIOUS_STATE_KEY",
    "RESERVED_KEY_PREFIX",
]
