"""Redis-backed session store."""

from __future__ import annotations

import json
from typing import Any

from redis import Redis


class RedisSessionStore:
    """Session store keeping JSON-encoded session data in Redis with a TTL."""

    def __init__(self, client: Redis, *, ttl_seconds: int, key_prefix: str = "session") -> None:
        """Initialise the Redis client, expiry window, and key namespace."""
        self._client = client
        self._ttl = ttl_seconds
        self._key_prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}:{session_id}"

    def load(self, session_id: str) -> dict[str, Any] | None:
        """Return the decoded session data, or ``None`` if the key is absent or unreadable."""
        raw = self._client.get(self._key(session_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        """Write the session data, resetting its expiry."""
        self._client.set(self._key(session_id), json.dumps(data), ex=self._ttl)

    def destroy(self, session_id: str) -> None:
        self._client.delete(self._key(session_id))
