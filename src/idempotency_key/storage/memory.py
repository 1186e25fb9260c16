"""In-memory store guarded by a single mutex.

This module provides a process-local implementation of the Store protocol.
Every operation runs under one ``threading.Lock``, which makes the
check-then-insert sequence of ``set`` atomic with respect to concurrent
callers, whether they are asyncio tasks or worker threads. The critical
sections never await, so holding a thread lock inside a coroutine cannot
block the event loop for longer than a dictionary operation.

The MemoryStore is suitable for:
    - Single-process applications
    - Development and testing

It does not coordinate across processes or machines; use RedisStore for that.

Expiration:
    Entries expire lazily: get() compares the stored expiration instant with
    the current time and deletes expired entries before reporting them absent.
    cleanup_expired() sweeps entries that are never read again.

Examples:
    Basic usage::

        from idempotency_key.storage.memory import MemoryStore

        store = MemoryStore(expires_in=3600)

        await store.set("abc123:response", {"status": 201}, ttl_seconds=60)
        await store.get("abc123:response")  # {"status": 201}

    Concurrent callers::

        results = await asyncio.gather(
            store.set("abc123:lock", "locked"),
            store.set("abc123:lock", "locked"),
            return_exceptions=True,
        )
        # Exactly one succeeds, the other is a ConflictError
"""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from idempotency_key.exceptions import ConflictError
from idempotency_key.models import StoredEntry

DEFAULT_EXPIRATION = 86400  # 24 hours in seconds


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MemoryStore:
    """In-memory store with lazy expiration.

    Attributes:
        expires_in: Default TTL in seconds applied by set().
        _entries: Dictionary mapping keys to StoredEntry objects.
        _mutex: Lock serializing every access to _entries.
        _clock: Callable returning the current aware UTC datetime.
    """

    def __init__(
        self,
        expires_in: int = DEFAULT_EXPIRATION,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize a new in-memory store.

        Args:
            expires_in: Default TTL in seconds for set() calls without an
                explicit TTL.
            clock: Source of the current time. Defaults to ``datetime.now(UTC)``.
        """
        if expires_in <= 0:
            raise ValueError(f"expires_in must be positive, got {expires_in}")
        self.expires_in = expires_in
        self._entries: dict[str, StoredEntry] = {}
        self._mutex = threading.Lock()
        self._clock = clock or _utcnow

    async def get(self, key: str) -> Any | None:
        """Return the live value for ``key``, deleting it if expired."""
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None

            return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> Any:
        """Insert ``value`` under ``key`` unless a live entry exists.

        An expired entry is treated as absent and replaced.

        Raises:
            ConflictError: If a live entry already exists for ``key``.
        """
        ttl = self.expires_in if ttl_seconds is None else ttl_seconds

        with self._mutex:
            now = self._clock()
            existing = self._entries.get(key)
            if existing is not None and not existing.is_expired(now):
                raise ConflictError(key=key)

            self._entries[key] = StoredEntry(
                value=value,
                expires_at=now + timedelta(seconds=ttl),
            )
            return value

    async def unset(self, key: str) -> None:
        """Remove ``key``; a missing key is ignored."""
        with self._mutex:
            self._entries.pop(key, None)

    async def cleanup_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            The number of entries removed.
        """
        with self._mutex:
            now = self._clock()
            expired_keys = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired_keys:
                del self._entries[key]
            return len(expired_keys)

    def __len__(self) -> int:
        """Number of entries held, including expired ones not yet evicted."""
        with self._mutex:
            return len(self._entries)
