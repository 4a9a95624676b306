"""Prometheus metrics for contract mutations, persistence and webhook performance"""

from prometheus_client import Counter, Histogram

# Mutation metrics
mutation_counter = Counter(
    "cuota_mutation_total",
    "Contract mutations by operation and outcome",
    ["operation", "outcome"],  # committed | invalid_input | not_found | conflict | persistence_failure
)

contracts_registered_counter = Counter(
    "contracts_registered_total",
    "Contracts registered",
    ["forma_pago"],  # contado | cuotas
)

persistence_failure_counter = Counter(
    "persistence_failures_total",
    "Contract writes rejected by the database",
)

# Webhook metrics
event_latency_histogram = Histogram(
    "contract_event_latency_seconds",
    "Contract event webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

event_failure_counter = Counter(
    "contract_event_failures_total",
    "Failed contract event deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_mutation(operation: str, outcome: str) -> None:
    """Record mutation outcome; persistence failures are also counted on their own"""
    mutation_counter.labels(operation=operation, outcome=outcome).inc()
    if outcome == "persistence_failure":
        persistence_failure_counter.inc()
