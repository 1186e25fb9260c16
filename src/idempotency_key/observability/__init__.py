"""Observability utilities for idempotency middleware.

This package provides monitoring and debugging capabilities:
- Prometheus metrics for request outcomes and lock usage
- Structured logging with contextual information
"""

from idempotency_key.observability.logging import configure_logging, get_logger
from idempotency_key.observability.metrics import (
    decrement_active_locks,
    increment_active_locks,
    record_cleanup,
    record_execution_time,
    record_request,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_request",
    "record_execution_time",
    "record_cleanup",
    "increment_active_locks",
    "decrement_active_locks",
]
