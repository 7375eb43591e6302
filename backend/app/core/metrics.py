"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration metrics
registration_attempts = Counter(
    'registration_attempts_total',
    'Total registration attempts',
    ['result']  # registered, waitlisted, already_active, event_not_found, error
)

registration_latency = Histogram(
    'registration_latency_seconds',
    'Registration request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

cancellations = Counter(
    'registration_cancellations_total',
    'Cancelled registrations',
    ['prior_status']  # registered, waitlisted
)

waitlist_promotions = Counter(
    'waitlist_promotions_total',
    'Waitlisted registrations promoted to registered'
)

# Database metrics
transaction_retries = Counter(
    'registration_transaction_retries_total',
    'Transaction retries due to serialization conflicts or transient store errors',
    ['operation']
)

transaction_failures = Counter(
    'registration_transaction_failures_total',
    'Transactions abandoned after exhausting retries',
    ['operation']
)

# Notification metrics
notification_failures = Counter(
    'notification_failures_total',
    'Notifications that failed and were dropped',
    ['kind']  # registration_confirmed, reminder_due
)

# Reminder sweep metrics
reminders_triggered = Counter(
    'reminders_triggered_total',
    'Reminders claimed and dispatched by the sweep'
)

reminder_sweep_errors = Counter(
    'reminder_sweep_errors_total',
    'Reminder sweep iterations that failed'
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


def record_registration(result: str):
    """Record registration outcome."""
    registration_attempts.labels(result=result).inc()


def record_cancellation(prior_status: str, promoted: bool):
    cancellations.labels(prior_status=prior_status).inc()
    if promoted:
        waitlist_promotions.inc()


def record_retry(operation: str):
    transaction_retries.labels(operation=operation).inc()


def record_transaction_failure(operation: str):
    transaction_failures.labels(operation=operation).inc()


def record_notification_failure(kind: str):
    notification_failures.labels(kind=kind).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
