"""Redis-backed store for multi-process deployments.

This module provides a Store implementation on top of ``redis.asyncio``.
Atomicity is delegated to Redis itself: ``set`` issues
``SET key value NX EX ttl``, so no client-side locking is needed and several
processes or machines sharing one Redis instance get the same
mutual-exclusion guarantee as a single process.

Keys are namespaced (``idempotency_key:<key>`` by default) so the store can
share a Redis database with unrelated data. Values are JSON-encoded on write
and decoded on read. Every Redis error is translated to StorageError.

The store accepts three kinds of handles:

- A ``redis.asyncio.Redis`` client (used directly)
- A ``redis.asyncio.ConnectionPool`` (wrapped in a client bound to the pool)
- Any object exposing ``connection()``, an async context manager that lends
  out a client for one operation and takes it back afterwards

Examples:
    Direct client::

        from redis.asyncio import Redis
        from idempotency_key.storage.redis_store import RedisStore

        store = RedisStore(Redis.from_url("redis://localhost:6379/0"))

    Shared pool with a custom namespace::

        from redis.asyncio import ConnectionPool

        pool = ConnectionPool.from_url("redis://cache:6379/1")
        store = RedisStore(pool, expires_in=3600, namespace="payments")
"""

import json
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol, runtime_checkable

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from idempotency_key.exceptions import ConflictError, StorageError

DEFAULT_EXPIRATION = 86400  # 24 hours in seconds
KEY_NAMESPACE = "idempotency_key"


@runtime_checkable
class ConnectionProvider(Protocol):
    """A pool that lends out a client for the duration of one operation."""

    def connection(self) -> AbstractAsyncContextManager[Redis]:
        """Borrow a client; it is returned when the context exits."""
        ...


class RedisStore:
    """Store implementation backed by Redis ``SET NX EX``.

    Attributes:
        expires_in: Default TTL in seconds applied by set().
        namespace: Prefix applied to every key.
    """

    def __init__(
        self,
        client: Redis | ConnectionPool | ConnectionProvider,
        expires_in: int = DEFAULT_EXPIRATION,
        namespace: str = KEY_NAMESPACE,
    ) -> None:
        """Initialize the store.

        Args:
            client: A Redis client, a connection pool, or a connection provider.
            expires_in: Default TTL in seconds for set() calls without an
                explicit TTL.
            namespace: Prefix for every key written by this store.
        """
        if expires_in <= 0:
            raise ValueError(f"expires_in must be positive, got {expires_in}")
        if isinstance(client, ConnectionPool):
            client = Redis(connection_pool=client)
        self._client = client
        self.expires_in = expires_in
        self.namespace = namespace

    async def get(self, key: str) -> Any | None:
        """Return the decoded value for ``key``, or None if absent.

        Raises:
            StorageError: If Redis fails or the stored payload is not JSON.
        """
        async with self._connection() as conn:
            try:
                raw = await conn.get(self.namespaced_key(key))
            except RedisError as e:
                raise StorageError(str(e) or type(e).__name__, cause=e) from e

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Corrupted payload for key {key}: {e}", cause=e) from e

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> Any:
        """Store ``value`` with ``SET NX EX``.

        Raises:
            ConflictError: If Redis already holds the key.
            StorageError: If Redis fails.
        """
        ttl = self.expires_in if ttl_seconds is None else ttl_seconds
        payload = json.dumps(value)

        async with self._connection() as conn:
            try:
                created = await conn.set(self.namespaced_key(key), payload, nx=True, ex=ttl)
            except RedisError as e:
                raise StorageError(str(e) or type(e).__name__, cause=e) from e

        if not created:
            raise ConflictError(key=key)
        return value

    async def unset(self, key: str) -> None:
        """Delete ``key``; deleting a missing key is a no-op in Redis."""
        async with self._connection() as conn:
            try:
                await conn.delete(self.namespaced_key(key))
            except RedisError as e:
                raise StorageError(str(e) or type(e).__name__, cause=e) from e

    def namespaced_key(self, key: str) -> str:
        """Prefix ``key`` with the namespace, dropping any whitespace."""
        return f"{self.namespace}:{''.join(key.split())}"

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Redis]:
        """Yield a usable client, borrowing one from a provider if needed."""
        if not isinstance(self._client, Redis) and isinstance(self._client, ConnectionProvider):
            try:
                async with self._client.connection() as conn:
                    yield conn
            except RedisError as e:
                raise StorageError(str(e) or type(e).__name__, cause=e) from e
        else:
            yield self._client
