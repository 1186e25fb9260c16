"""Periodic sweep of expired entries in the in-memory store.

MemoryStore only evicts an expired entry when it is read again. Entries whose
fingerprint never comes back would otherwise stay in memory forever, so this
module runs ``MemoryStore.cleanup_expired()`` in the background.

Redis expires keys natively and needs no sweep.

Examples:
    Start cleanup task in the background::

        from idempotency_key.core.cleanup import start_cleanup_task, stop_cleanup_task
        from idempotency_key.storage.memory import MemoryStore

        store = MemoryStore()
        task = await start_cleanup_task(store, interval_seconds=300)

        # Later, when shutting down
        await stop_cleanup_task(task)

    Integrate with a FastAPI lifespan::

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            task = await start_cleanup_task(store)
            yield
            await stop_cleanup_task(task)
"""

import asyncio

from idempotency_key.observability.logging import get_logger
from idempotency_key.observability.metrics import record_cleanup
from idempotency_key.storage.memory import MemoryStore

logger = get_logger(__name__)


async def cleanup_loop(
    store: MemoryStore,
    interval_seconds: float = 300,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Remove expired entries every ``interval_seconds`` until stopped.

    Errors are logged and the loop keeps running.

    Args:
        store: Store to sweep
        interval_seconds: Time between sweeps (default 300s = 5 minutes)
        stop_event: Event that stops the loop when set
    """
    if stop_event is None:
        stop_event = asyncio.Event()

    logger.info("cleanup.started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            count = await store.cleanup_expired()
            record_cleanup(count)
            if count > 0:
                logger.info("cleanup.completed", records_removed=count)
            else:
                logger.debug("cleanup.completed", records_removed=0)
        except Exception as e:
            logger.error(
                "cleanup.failed",
                error=str(e),
                error_type=type(e).__name__,
            )

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue

    logger.info("cleanup.stopped")


async def start_cleanup_task(
    store: MemoryStore,
    interval_seconds: float = 300,
) -> asyncio.Task[None]:
    """Start the cleanup loop as a background task.

    Returns:
        The asyncio Task running the loop; pass it to stop_cleanup_task()
    """
    stop_event = asyncio.Event()
    task = asyncio.create_task(
        cleanup_loop(store=store, interval_seconds=interval_seconds, stop_event=stop_event)
    )
    task._stop_event = stop_event  # type: ignore[attr-defined]
    return task


async def stop_cleanup_task(task: asyncio.Task[None]) -> None:
    """Signal the cleanup loop to stop and wait for it, cancelling after 5s."""
    stop_event: asyncio.Event | None = getattr(task, "_stop_event", None)
    if stop_event:
        stop_event.set()

    try:
        await asyncio.wait_for(task, timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning("cleanup.stop_timeout", message="Cleanup task did not stop in time")
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("cleanup.cancelled")
