"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking orchestrator metrics
booking_operations = Counter(
    'booking_operations_total',
    'Booking orchestrator operations by outcome',
    ['operation', 'outcome']  # create/cancel/payment, success or error code
)

booking_latency = Histogram(
    'booking_operation_latency_seconds',
    'Booking orchestrator transaction latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Participant count metrics
participant_count_changes = Counter(
    'participant_count_changes_total',
    'Participant count mutations written to the audit log',
    ['action']  # increment, decrement, sync
)

participant_count_drift = Counter(
    'participant_count_drift_total',
    'Classes whose cached participant count had drifted and was repaired',
    ['trigger']  # manual, scheduled
)

reconciliation_runs = Counter(
    'participant_count_reconciliation_runs_total',
    'Full reconciliation passes',
    ['result']  # completed, failed
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Render all registered metrics in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_operation(operation: str, outcome: str):
    """Outcome is "success" or the error code of the failure."""
    booking_operations.labels(operation=operation, outcome=outcome).inc()


def record_count_change(action: str):
    participant_count_changes.labels(action=action).inc()


def record_drift(trigger: str):
    participant_count_drift.labels(trigger=trigger).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
