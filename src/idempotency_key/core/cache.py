"""Response cache keyed by request fingerprint.

Completed responses are stored under ``<fingerprint>:response`` with a long
retention (the store's ``expires_in`` unless overridden). Lookups return the
response marked as a replay.

Some statuses are never cached (400 by default): a rejected request is
expected to be retried with corrected input, and caching the rejection would
pin the client to it for the whole retention period.

Writes go through the store's conditional insert. Under the lock only one
execution per fingerprint reaches ``store()``, so a second writer only
appears after a lock TTL lapsed mid-execution; the first cached result then
wins and the late write is dropped.
"""

from collections.abc import Iterable

from pydantic import ValidationError

from idempotency_key.core.replay import replay_response
from idempotency_key.exceptions import ConflictError, StorageError
from idempotency_key.messages import Response
from idempotency_key.models import StoredResponse
from idempotency_key.observability.logging import get_logger
from idempotency_key.storage.base import Store

logger = get_logger(__name__)

DEFAULT_UNCACHED_STATUSES = (400,)


def cache_key(fingerprint: str) -> str:
    """Store key of the cached response for ``fingerprint``."""
    return f"{fingerprint}:response"


class ResponseCache:
    """Stores and replays completed responses.

    Attributes:
        ttl_seconds: Retention of cached responses; None uses the store default.
        uncached_statuses: Status codes that are never cached.
    """

    def __init__(
        self,
        store: Store,
        ttl_seconds: int | None = None,
        uncached_statuses: Iterable[int] = DEFAULT_UNCACHED_STATUSES,
    ) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds
        self.uncached_statuses = frozenset(uncached_statuses)

    async def lookup(self, fingerprint: str) -> Response | None:
        """Return the cached response for ``fingerprint`` marked as a replay.

        Returns:
            The replayed response, or None on a cache miss.

        Raises:
            StorageError: If the store fails or holds an unreadable payload.
        """
        payload = await self._store.get(cache_key(fingerprint))
        if payload is None:
            return None

        try:
            stored = StoredResponse.from_payload(payload)
        except ValidationError as e:
            raise StorageError(f"Unreadable cached response for {fingerprint}: {e}", cause=e) from e

        logger.info("cache.hit", fingerprint=fingerprint, status=stored.status)
        return replay_response(stored)

    async def store(self, fingerprint: str, response: Response) -> bool:
        """Cache ``response`` unless its status is excluded.

        Returns:
            True if the response was written, False if it was excluded or a
            response was already cached for this fingerprint.

        Raises:
            StorageError: If the store fails.
        """
        if response.status in self.uncached_statuses:
            logger.debug("cache.skipped", fingerprint=fingerprint, status=response.status)
            return False

        stored = StoredResponse.from_parts(response.status, response.headers, response.body)
        try:
            await self._store.set(
                cache_key(fingerprint),
                stored.to_payload(),
                ttl_seconds=self.ttl_seconds,
            )
        except ConflictError:
            logger.debug("cache.exists", fingerprint=fingerprint)
            return False

        logger.debug("cache.stored", fingerprint=fingerprint, status=response.status)
        return True
