"""
Prometheus Metrics Middleware
==============================
HTTP request metrics plus call-lifecycle counters.
"""
import time

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"]
)

calls_created_total = Counter(
    "calls_created_total",
    "Calls created"
)

calls_ended_total = Counter(
    "calls_ended_total",
    "Calls transitioned to ended",
    ["reason"]  # explicit | auto
)

room_release_failures_total = Counter(
    "room_release_failures_total",
    "Video rooms that could not be released on teardown"
)

enrollment_failures_total = Counter(
    "call_enrollment_failures_total",
    "Participant rows that failed to insert",
    ["stage"]  # create | join
)


def _route_path(request: Request) -> str:
    # Use the route template so /calls/<uuid> doesn't create one series per call
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        # Skip metrics endpoint itself
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        path = _route_path(request)

        http_requests_total.labels(
            method=request.method,
            path=path,
            status=response.status_code
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            path=path
        ).observe(duration)

        return response


async def metrics_endpoint(request: Request):
    """Endpoint to expose Prometheus metrics."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
