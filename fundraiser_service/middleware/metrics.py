"""
Prometheus metrics for the fundraiser service.

HTTP traffic is labelled by route template (``/donate/{link_code}``) so
link codes and ids do not explode label cardinality.
"""
import time

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from fundraiser_service.core.circuit_breaker import CircuitState, db_circuit_breaker

http_requests_total = Counter(
    "http_requests_total",
    "HTTP requests served",
    ["method", "route", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

donations_recorded_total = Counter(
    "donations_recorded_total",
    "Pending donations recorded from public donate pages",
)

donation_status_transitions_total = Counter(
    "donation_status_transitions_total",
    "Donation payment status transitions",
    ["status"],
)

donations_reconciled_total = Counter(
    "donations_reconciled_total",
    "Completed donations added to the owner's collected total",
)

progress_updates_total = Counter(
    "progress_updates_total",
    "Self-reported fundraising progress updates",
)

db_operations_total = Counter(
    "db_operations_total",
    "Ledger database operations",
    ["operation", "table", "status"],
)

db_circuit_open = Gauge(
    "db_circuit_open",
    "1 while the ledger database circuit breaker is open or probing",
)


class MetricsMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        route = getattr(request.scope.get("route"), "path", "unmatched")
        http_requests_total.labels(request.method, route, str(response.status_code)).inc()
        http_request_duration_seconds.labels(request.method, route).observe(elapsed)
        return response


def metrics_response() -> Response:
    db_circuit_open.set(0 if db_circuit_breaker.state is CircuitState.CLOSED else 1)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
