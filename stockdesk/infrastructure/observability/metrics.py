"""Prometheus metrics for payments, stock alerts, and backend performance"""

from prometheus_client import Counter, Gauge, Histogram

# Payment metrics
payments_applied_counter = Counter(
    "stockdesk_payments_applied_total",
    "Payments applied to credits and invoices",
    ["kind", "status"],  # kind: credit | invoice, status: resulting status
)

payments_rejected_counter = Counter(
    "stockdesk_payments_rejected_total",
    "Payments refused before reaching the backend",
    ["reason"],  # invalid_amount | inconsistent_record
)

# Stock metrics
low_stock_gauge = Gauge(
    "stockdesk_low_stock_products",
    "Products at or below their reorder threshold in the last snapshot",
)

# Backend API metrics
backend_latency_histogram = Histogram(
    "stockdesk_backend_request_seconds",
    "Backend API response time",
    ["method"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

backend_failure_counter = Counter(
    "stockdesk_backend_failures_total",
    "Failed backend API calls",
    ["method"],
)


def record_payment(kind: str, status: str) -> None:
    payments_applied_counter.labels(kind=kind, status=status).inc()


def record_rejected_payment(reason: str) -> None:
    payments_rejected_counter.labels(reason=reason).inc()
