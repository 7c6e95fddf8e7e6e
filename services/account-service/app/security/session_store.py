"""In-memory session store implementation."""

from __future__ import annotations

import copy
import time
from threading import Lock
from typing import Any


class InMemorySessionStore:
    """Thread-safe process-local session store with per-entry expiry."""

    def __init__(self, ttl_seconds: int) -> None:
        """Initialise the expiry window and the backing dictionary."""
        self._ttl = ttl_seconds
        self._sessions: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = Lock()

    def load(self, session_id: str) -> dict[str, Any] | None:
        """Return a copy of the stored session data, or ``None`` if absent or expired."""
        now = time.time()
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            expires_at, data = entry
            if expires_at <= now:
                del self._sessions[session_id]
                return None
            return copy.deepcopy(data)

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        """Store the session data and restart its expiry window."""
        with self._lock:
            self._sessions[session_id] = (time.time() + self._ttl, copy.deepcopy(data))

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
