"""Request lifecycle for eligible requests.

For a request with fingerprint F the lifecycle is::

    START ──lock held elsewhere──> CONFLICT (409)
      │
      │ lock acquired
      v
    LOCKED ──cache hit──> REPLAYING ──> lock released, cached response
      │
      │ cache miss
      v
    EXECUTING ──handler returns R──> cache R (unless excluded) ──> DONE
                                      lock released, R returned

A store failure at any step ends in STORAGE_ERROR (503). An exception raised
by the handler is not translated: the lock is released, nothing is cached,
and the exception propagates to the host.

Examples:
    >>> result = await process_request(
    ...     request=request,
    ...     fingerprint=compute_fingerprint(request),
    ...     handler=handler,
    ...     lock=LockCoordinator(store),
    ...     cache=ResponseCache(store),
    ... )
    >>> result.outcome
    <RequestOutcome.NEW: 'new'>
"""

import time
from collections.abc import Awaitable, Callable

from idempotency_key.core.cache import ResponseCache
from idempotency_key.core.lock import LockCoordinator
from idempotency_key.exceptions import ConflictError, StorageError
from idempotency_key.messages import Request, Response
from idempotency_key.models import RequestOutcome
from idempotency_key.observability.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[Response]]


class StateResult:
    """Result of state machine processing.

    Attributes:
        response: The response to send (fresh, replayed, or an error response)
        outcome: How the request was disposed of
        execution_time_ms: Handler execution time (fresh executions only)
    """

    def __init__(
        self,
        response: Response,
        outcome: RequestOutcome,
        execution_time_ms: int | None = None,
    ) -> None:
        self.response = response
        self.outcome = outcome
        self.execution_time_ms = execution_time_ms

    @property
    def was_replayed(self) -> bool:
        return self.outcome is RequestOutcome.REPLAY


def conflict_response(error: ConflictError) -> Response:
    """409 response for a request whose lock is held elsewhere."""
    return Response(
        status=409,
        headers={"Content-Type": "text/plain"},
        body=error.message.encode("utf-8"),
    )


def storage_error_response(error: StorageError) -> Response:
    """503 response carrying the backend's error text."""
    return Response(
        status=503,
        headers={"Content-Type": "text/plain"},
        body=error.message.encode("utf-8"),
    )


async def process_request(
    request: Request,
    fingerprint: str,
    handler: Handler,
    lock: LockCoordinator,
    cache: ResponseCache,
) -> StateResult:
    """Run an eligible request through lock, cache lookup and execution.

    Args:
        request: The original request, handed to the handler unchanged
        fingerprint: Fingerprint of ``request``
        handler: Downstream application handler
        lock: Lock coordinator guarding the fingerprint
        cache: Response cache for the fingerprint

    Returns:
        StateResult with the response to send

    Raises:
        Exception: Whatever the handler raises, after the lock is released.
    """
    handler_started = False

    try:
        async with lock.locked(fingerprint):
            cached = await cache.lookup(fingerprint)
            if cached is not None:
                return StateResult(response=cached, outcome=RequestOutcome.REPLAY)

            handler_started = True
            start_time = time.perf_counter()
            response = await handler(request)
            execution_time_ms = int((time.perf_counter() - start_time) * 1000)
            handler_started = False

            await cache.store(fingerprint, response)
            return StateResult(
                response=response,
                outcome=RequestOutcome.NEW,
                execution_time_ms=execution_time_ms,
            )

    except ConflictError as e:
        if handler_started:
            raise
        logger.info("lock.conflict", fingerprint=fingerprint)
        return StateResult(response=conflict_response(e), outcome=RequestOutcome.CONFLICT)

    except StorageError as e:
        if handler_started:
            raise
        logger.warning(
            "storage.error",
            fingerprint=fingerprint,
            error=e.message,
            error_type=type(e.cause).__name__ if e.cause else type(e).__name__,
        )
        return StateResult(response=storage_error_response(e), outcome=RequestOutcome.STORAGE_ERROR)
