"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total reservation creation attempts',
    ['outcome']  # created or a rejection code
)

admission_latency = Histogram(
    'reservation_admission_latency_seconds',
    'Time spent admitting a reservation (rules + conflict check + insert)',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Optimistic room-version retries
booking_retries = Counter(
    'reservation_version_retries_total',
    'Re-checks caused by a concurrent booking on the same room'
)

status_transitions = Counter(
    'reservation_status_transitions_total',
    'Reservation status transitions',
    ['to_status', 'actor_role']  # actor_role: user, admin, system
)

sweep_completed = Counter(
    'reservation_sweep_completed_total',
    'Reservations persisted as completed by the elapsed sweep'
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


def record_reservation_attempt(outcome: str):
    """Record creation outcome: 'created' or the rejection code."""
    reservation_attempts.labels(outcome=outcome).inc()


def record_transition(to_status: str, actor_role: str):
    status_transitions.labels(to_status=to_status, actor_role=actor_role).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
