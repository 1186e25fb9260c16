"""ASGI middleware adapter for FastAPI and Starlette applications.

This module wraps the core idempotency middleware for ASGI frameworks. The
adapter:

1. Buffers the request body so it can be fingerprinted and still be read by
   the application
2. Passes ineligible requests to the application and returns its response
   untouched, streaming included
3. Processes eligible requests through the core middleware
4. Buffers the application's response so it can be cached, keeping repeated
   headers such as Set-Cookie, and converts the result back into a Starlette
   response

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from idempotency_key.adapters.asgi import ASGIIdempotencyMiddleware
        from idempotency_key.config import IdempotencyConfig
        from idempotency_key.storage.memory import MemoryStore

        app = FastAPI()
        app.add_middleware(
            ASGIIdempotencyMiddleware,
            store=MemoryStore(),
            config=IdempotencyConfig(lock_ttl_seconds=30),
        )

    Store built from configuration (Redis shared by several workers)::

        app.add_middleware(
            ASGIIdempotencyMiddleware,
            config=IdempotencyConfig(storage_backend="redis", redis_url="redis://cache:6379/0"),
        )
"""

from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from idempotency_key.config import IdempotencyConfig
from idempotency_key.core.middleware import IdempotencyMiddleware
from idempotency_key.messages import Request, Response
from idempotency_key.models import RequestOutcome
from idempotency_key.observability.logging import get_logger
from idempotency_key.observability.metrics import record_request
from idempotency_key.storage import create_store
from idempotency_key.storage.base import Store
from idempotency_key.utils.headers import collect_headers, filter_hop_by_hop_headers

logger = get_logger(__name__)


class ASGIIdempotencyMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for idempotency handling.

    Attributes:
        store: Backend holding locks and cached responses
        config: Configuration object
        middleware: Core middleware instance
    """

    def __init__(
        self,
        app: Any,
        store: Store | None = None,
        config: IdempotencyConfig | None = None,
        client: Any = None,
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            store: Backend for locks and cached responses. Built from
                ``config`` when omitted.
            config: Configuration object (uses defaults if not provided)
            client: Optional Redis client or pool used when the store is
                built from a "redis" configuration
        """
        super().__init__(app)
        self.config = config or IdempotencyConfig()
        self.store = store if store is not None else create_store(self.config, client)
        self.middleware = IdempotencyMiddleware(self.store, self.config)

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[StarletteResponse]],
    ) -> StarletteResponse:
        """Process an ASGI request with idempotency handling.

        Args:
            request: The Starlette request object
            call_next: Function to call the next middleware/handler

        Returns:
            Starlette Response object
        """
        internal_request = await self._convert_request(request)
        if not self.middleware.policy.is_eligible(internal_request):
            logger.debug("request.bypassed", method=request.method, path=request.url.path)
            passthrough = await call_next(request)
            record_request(RequestOutcome.BYPASS.value, passthrough.status_code)
            return passthrough

        async def handler(_req: Request) -> Response:
            response = await call_next(request)

            body = b""
            if hasattr(response, "body_iterator"):
                async for chunk in response.body_iterator:
                    if isinstance(chunk, str):
                        chunk = chunk.encode(response.charset)
                    body += bytes(chunk)
            else:
                body = bytes(getattr(response, "body", b""))

            return Response(
                status=response.status_code,
                headers=filter_hop_by_hop_headers(collect_headers(response.headers.raw)),
                body=body,
            )

        result = await self.middleware.process(internal_request, handler)
        return self._convert_response(result)

    async def _convert_request(self, request: StarletteRequest) -> Request:
        """Convert a Starlette request to the internal Request format.

        The body is read in full; Starlette keeps it cached so the
        application can read it again.
        """
        body = await request.body()

        return Request(
            method=request.method,
            path=request.url.path,
            query_string=request.url.query or "",
            headers=dict(request.headers.items()),
            body=body,
        )

    def _convert_response(self, response: Response) -> StarletteResponse:
        """Convert an internal Response to a Starlette Response.

        Every value of a repeated header is sent as its own header line.
        """
        first_values = {
            name: value if isinstance(value, str) else value[0]
            for name, value in response.headers.items()
            if isinstance(value, str) or value
        }
        converted = StarletteResponse(
            content=response.body,
            status_code=response.status,
            headers=first_values,
        )
        for name, value in response.headers.items():
            if isinstance(value, list):
                for extra in value[1:]:
                    converted.headers.append(name, extra)
        return converted
