"""Prometheus metrics for idempotency middleware.

Metrics include:

- Request counters by outcome (bypass, new, replay, conflict, storage_error)
- Handler execution time histogram (fresh executions only)
- Gauge of request locks currently held by this process
- Memory store cleanup tracking

Examples:
    >>> record_request(result="replay", status_code=201)
    >>> record_execution_time(exec_time_ms=150)
"""

from prometheus_client import Counter, Gauge, Histogram

# Labels: result (bypass, new, replay, conflict, storage_error), status_code
requests_total = Counter(
    "idempotency_requests_total",
    "Total number of requests seen by the idempotency middleware",
    ["result", "status_code"],
)

execution_time_seconds = Histogram(
    "idempotency_execution_time_seconds",
    "Handler execution time in seconds (fresh executions only)",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

active_locks = Gauge(
    "idempotency_active_locks",
    "Number of request locks currently held by this process",
)

cleanup_operations = Counter(
    "idempotency_cleanup_operations_total",
    "Total number of memory store cleanup runs",
)

cleanup_records_removed = Counter(
    "idempotency_cleanup_records_removed_total",
    "Total number of expired entries removed by cleanup",
)


def record_request(result: str, status_code: int | None = None) -> None:
    """Record a processed request.

    Args:
        result: The outcome (bypass, new, replay, conflict, storage_error)
        status_code: HTTP status code of the response, if one was produced
    """
    label = str(status_code) if status_code is not None else "none"
    requests_total.labels(result=result, status_code=label).inc()


def record_execution_time(exec_time_ms: int) -> None:
    """Record handler execution time; call only for fresh executions."""
    execution_time_seconds.observe(exec_time_ms / 1000.0)


def increment_active_locks() -> None:
    active_locks.inc()


def decrement_active_locks() -> None:
    active_locks.dec()


def record_cleanup(records_removed: int) -> None:
    """Record one cleanup run and the number of entries it removed."""
    cleanup_operations.inc()
    cleanup_records_removed.inc(records_removed)
