"""Prometheus metric definitions for the payment service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


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
provider_calls_total = Counter(
    "provider_calls_total",
    "Calls made to the payment provider",
    ["service", "operation", "outcome"],
)
webhook_events_total = Counter(
    "webhook_events_total",
    "Verified webhook events by type",
    ["service", "event_type"],
)
rate_limited_requests_total = Counter(
    "rate_limited_requests_total",
    "Requests rejected by the rate limiter",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
