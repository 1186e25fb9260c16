"""Framework-agnostic core middleware for idempotency handling.

This module provides the entry point that framework adapters call for every
request. The middleware:

1. Lets ineligible requests through untouched (no store access)
2. Computes the request fingerprint
3. Runs the request through the lock / cache / execute lifecycle
4. Records metrics and logs for the outcome

Several middleware instances can live in one process, each with its own
store and settings; nothing is shared through module globals.

Examples:
    Using the middleware directly::

        from idempotency_key.core.middleware import IdempotencyMiddleware
        from idempotency_key.messages import Request, Response
        from idempotency_key.storage.memory import MemoryStore

        middleware = IdempotencyMiddleware(MemoryStore())

        async def handler(request: Request) -> Response:
            return Response(status=201, headers={}, body=b"created")

        response = await middleware.process(
            Request("POST", "/payments", headers={"Idempotency-Key": "abc"}, body=b"{}"),
            handler,
        )
"""

from idempotency_key.config import IdempotencyConfig
from idempotency_key.core.cache import ResponseCache
from idempotency_key.core.lock import LockCoordinator
from idempotency_key.core.state_machine import Handler, process_request
from idempotency_key.eligibility import EligibilityPolicy
from idempotency_key.fingerprint import compute_fingerprint
from idempotency_key.messages import Request, Response
from idempotency_key.models import RequestOutcome
from idempotency_key.observability.logging import get_logger
from idempotency_key.observability.metrics import record_execution_time, record_request
from idempotency_key.storage.base import Store

logger = get_logger(__name__)


class IdempotencyMiddleware:
    """Framework-agnostic idempotency middleware.

    Attributes:
        store: Backend holding locks and cached responses
        config: Configuration object
        policy: Eligibility policy built from the configuration
        lock: Lock coordinator using ``config.lock_ttl_seconds``
        cache: Response cache using the store's default TTL
    """

    def __init__(
        self,
        store: Store,
        config: IdempotencyConfig | None = None,
        policy: EligibilityPolicy | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            store: Backend holding locks and cached responses
            config: Configuration object (uses defaults if not provided)
            policy: Eligibility policy (built from ``config`` if not provided)
        """
        self.store = store
        self.config = config or IdempotencyConfig()
        self.policy = policy or EligibilityPolicy.from_config(self.config)
        self.lock = LockCoordinator(store, ttl_seconds=self.config.lock_ttl_seconds)
        self.cache = ResponseCache(store, uncached_statuses=self.config.uncached_statuses)

    async def process(self, request: Request, handler: Handler) -> Response:
        """Process a request with idempotency handling.

        Args:
            request: The incoming request
            handler: Async function producing the response for a fresh execution

        Returns:
            The handler's response, a replayed response, or a 409 / 503 error
            response

        Raises:
            Exception: Anything the handler raises, unchanged
        """
        if not self.policy.is_eligible(request):
            logger.debug("request.bypassed", method=request.method, path=request.path)
            response = await handler(request)
            record_request(RequestOutcome.BYPASS.value, response.status)
            return response

        fingerprint = compute_fingerprint(request)
        result = await process_request(
            request=request,
            fingerprint=fingerprint,
            handler=handler,
            lock=self.lock,
            cache=self.cache,
        )

        record_request(result.outcome.value, result.response.status)
        if result.execution_time_ms is not None:
            record_execution_time(result.execution_time_ms)
            logger.info(
                "request.executed",
                fingerprint=fingerprint,
                status=result.response.status,
                execution_time_ms=result.execution_time_ms,
            )

        return result.response
