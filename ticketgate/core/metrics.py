"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Admission control metrics
admission_requests = Counter(
    'admission_requests_total',
    'Rate gate decisions',
    ['gate', 'result']  # checkout/status, admitted/rejected
)

# Inventory metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Atomic reserve attempts',
    ['result']  # ok, sold_out, inactive, not_found
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Atomic reserve latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Checkout / payment metrics
checkout_sessions = Counter(
    'checkout_sessions_total',
    'Checkout initiation results',
    ['result']  # created, rejected, error
)

payment_session_latency = Histogram(
    'payment_session_latency_seconds',
    'Payment provider session creation latency',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

fulfillment_outcomes = Counter(
    'fulfillment_outcomes_total',
    'Payment completion handling outcomes',
    ['outcome']  # issued, deduped, sold_out, error
)

webhook_signature_failures = Counter(
    'webhook_signature_failures_total',
    'Webhook deliveries rejected by signature verification'
)

# Status oracle metrics
status_queries = Counter(
    'status_queries_total',
    'Inventory status queries',
    ['result']  # ok, fail_closed
)


def metrics_endpoint() -> Response:
    """Prometheus exposition of the default registry."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_admission(gate: str, admitted: bool):
    """Record admission control decision."""
    result = "admitted" if admitted else "rejected"
    admission_requests.labels(gate=gate, result=result).inc()


def record_reservation(result: str):
    """Result: ok, sold_out, inactive, not_found"""
    reservation_attempts.labels(result=result).inc()


def record_checkout(result: str):
    checkout_sessions.labels(result=result).inc()


def record_fulfillment(outcome: str):
    fulfillment_outcomes.labels(outcome=outcome).inc()


def record_status_query(fail_closed: bool):
    status_queries.labels(result="fail_closed" if fail_closed else "ok").inc()
