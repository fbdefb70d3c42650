"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

import functools

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Lifecycle metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking lifecycle transitions',
    ['transition', 'result']  # result: success, or the error kind
)

booking_create_latency = Histogram(
    'booking_create_latency_seconds',
    'Latency of the check-and-insert critical section',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Availability metrics
availability_checks = Counter(
    'availability_checks_total',
    'Availability checks',
    ['result']  # available, unavailable
)

# Concurrency metrics
booking_version_conflicts = Counter(
    'booking_version_conflicts_total',
    'Compare-and-swap losses on booking or unit versions',
    ['target']  # booking, unit
)

booking_expirations = Counter(
    'booking_expirations_total',
    'Bookings moved to expired after the payment window lapsed'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_transition(transition: str, result: str = "success"):
    booking_transitions.labels(transition=transition, result=result).inc()


def record_availability(available: bool):
    availability_checks.labels(result="available" if available else "unavailable").inc()


def record_version_conflict(target: str):
    booking_version_conflicts.labels(target=target).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def track_transition(transition: str):
    """Count outcomes of an async lifecycle operation by error kind."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                record_transition(transition, getattr(exc, "kind", "error"))
                raise
            record_transition(transition)
            return result

        return wrapper

    return decorator
