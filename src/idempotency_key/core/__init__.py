"""Core middleware logic for idempotency handling.

This package contains the framework-agnostic business logic:
- Lock: per-fingerprint mutual exclusion on top of a Store
- Cache: response memoization keyed by fingerprint
- Replay: rebuilding cached responses with the replay marker
- State machine: lock -> lookup -> execute -> cache lifecycle
- Middleware: entry point combining eligibility, fingerprinting and the lifecycle
- Cleanup: background sweep for the in-memory store
"""

from idempotency_key.core.cache import ResponseCache, cache_key
from idempotency_key.core.lock import LockCoordinator, lock_key
from idempotency_key.core.middleware import IdempotencyMiddleware
from idempotency_key.core.replay import replay_response
from idempotency_key.core.state_machine import StateResult, process_request

__all__ = [
    "IdempotencyMiddleware",
    "LockCoordinator",
    "ResponseCache",
    "StateResult",
    "cache_key",
    "lock_key",
    "process_request",
    "replay_response",
]
