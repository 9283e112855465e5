"""Prometheus request metrics for the FastAPI app.

Metric names follow the ones prometheus-fastapi-instrumentator exposes by
default, so existing dashboards keep working.
"""

import time

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest

registry = CollectorRegistry()

REQUESTS = Counter(
    "http_requests_total",
    "Total number of requests by method, handler and status.",
    ["method", "handler", "status"],
    registry=registry,
)
LATENCY = Histogram(
    "http_request_duration_seconds",
    "Latency of HTTP requests by method and handler.",
    ["method", "handler"],
    registry=registry,
)


def _handler(request: Request) -> str:
    # route template, not the raw path, so ids don't blow up label cardinality
    route = request.scope.get("route")
    return getattr(route, "path", "none")


def instrument(app: FastAPI, endpoint: str = "/metrics") -> None:
    @app.middleware("http")
    async def record_request(request: Request, call_next):
        if request.url.path == endpoint:
            return await call_next(request)
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            handler = _handler(request)
            REQUESTS.labels(request.method, handler, f"{status // 100}xx").inc()
            LATENCY.labels(request.method, handler).observe(time.perf_counter() - start)

    @app.get(endpoint, include_in_schema=False)
    def metrics():
        return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
