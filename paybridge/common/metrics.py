"""Prometheus metric definitions shared across services."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


checkout_sessions_total = Counter(
    "checkout_sessions_total",
    "Session creation attempts by outcome",
    ["service", "outcome"],
)
notifications_total = Counter(
    "notifications_total",
    "Reconciled gateway notifications by derived order status",
    ["service", "order_status"],
)
notification_failures_total = Counter(
    "notification_failures_total",
    "Gateway notifications answered with a server error",
    ["service", "error"],
)
gateway_latency_seconds = Histogram(
    "gateway_latency_seconds",
    "Payment gateway call latency seconds",
    ["service", "operation"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
