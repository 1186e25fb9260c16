"""Per-fingerprint mutual exclusion on top of a Store.

The lock is an ordinary store entry under ``<fingerprint>:lock``. Acquiring
it is a conditional insert, so among concurrent requests sharing a
fingerprint exactly one wins; the others get ConflictError immediately
instead of queueing.

The lock is released on every exit path of the protected section. Its TTL
only matters when the release never happens (the process died while holding
it): the fingerprint then becomes retryable once the TTL lapses.

Examples:
    Context manager form::

        coordinator = LockCoordinator(store, ttl_seconds=60)

        async with coordinator.locked(fingerprint):
            response = await handler(request)

    Callable form::

        response = await coordinator.with_lock(fingerprint, lambda: handler(request))
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from idempotency_key.exceptions import StorageError
from idempotency_key.observability.logging import get_logger
from idempotency_key.observability.metrics import decrement_active_locks, increment_active_locks
from idempotency_key.storage.base import Store

logger = get_logger(__name__)

DEFAULT_LOCK_TTL = 60  # seconds
LOCK_MARKER = "locked"

T = TypeVar("T")


def lock_key(fingerprint: str) -> str:
    """Store key of the lock guarding ``fingerprint``."""
    return f"{fingerprint}:lock"


class LockCoordinator:
    """Acquires and releases request locks through a Store.

    Attributes:
        store: Backend holding the lock entries.
        ttl_seconds: Lifetime of a lock that is never released.
    """

    def __init__(self, store: Store, ttl_seconds: int = DEFAULT_LOCK_TTL) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds

    @asynccontextmanager
    async def locked(self, fingerprint: str) -> AsyncIterator[None]:
        """Hold the lock for ``fingerprint`` while the block runs.

        Raises:
            ConflictError: If another request holds the lock. The block
                does not run.
            StorageError: If the store fails while acquiring, or while
                releasing after the block completed normally.
        """
        key = lock_key(fingerprint)
        await self.store.set(key, LOCK_MARKER, ttl_seconds=self.ttl_seconds)
        increment_active_locks()
        logger.debug("lock.acquired", fingerprint=fingerprint, ttl_seconds=self.ttl_seconds)

        try:
            yield
        except BaseException:
            # The block's own exception wins over a failed release
            await self._release_after_error(key, fingerprint)
            raise
        else:
            await self._release(key, fingerprint)

    async def with_lock(self, fingerprint: str, body: Callable[[], Awaitable[T]]) -> T:
        """Run ``body`` while holding the lock for ``fingerprint``.

        Returns:
            Whatever ``body`` returns.
        """
        async with self.locked(fingerprint):
            return await body()

    async def _release(self, key: str, fingerprint: str) -> None:
        try:
            await self.store.unset(key)
        finally:
            decrement_active_locks()
        logger.debug("lock.released", fingerprint=fingerprint)

    async def _release_after_error(self, key: str, fingerprint: str) -> None:
        try:
            await self._release(key, fingerprint)
        except StorageError as e:
            logger.warning(
                "lock.release_failed",
                fingerprint=fingerprint,
                error=e.message,
                ttl_seconds=self.ttl_seconds,
            )
