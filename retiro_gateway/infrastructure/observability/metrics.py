"""Prometheus metrics for monitoring registrations, charges, notifications and webhooks"""

from prometheus_client import Counter, Histogram

# Registration metrics
registration_counter = Counter(
    "retiro_registration_total",
    "Total registrations created",
)

settlement_counter = Counter(
    "retiro_registration_settled_total",
    "Registrations moved to settled by a payment notification",
)

# Charge metrics
charge_counter = Counter(
    "retiro_charge_total",
    "Remote charges created",
    ["billing_type"],  # PIX | BOLETO
)

charge_failure_counter = Counter(
    "retiro_charge_failures_total",
    "Remote charge creations rejected or unreachable",
    ["billing_type"],
)

# Notification metrics
notification_counter = Counter(
    "retiro_notification_total",
    "Payment notifications processed",
    ["result"],  # applied | unmatched | error
)

# Backup hook metrics
backup_latency_histogram = Histogram(
    "retiro_backup_latency_seconds",
    "Backup hook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

backup_failure_counter = Counter(
    "retiro_backup_failures_total",
    "Failed backup hook deliveries",
    ["event"],  # REGISTRATION_CREATED | REGISTRATION_SETTLED
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_notification(matched: bool, error: bool) -> None:
    """Record the result of a payment notification"""
    if error:
        result = "error"
    elif matched:
        result = "applied"
    else:
        result = "unmatched"
    notification_counter.labels(result=result).inc()
