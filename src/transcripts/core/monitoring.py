"""Prometheus metrics for HTTP traffic and Microsoft Graph calls.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- track_graph_call(): Context manager for Graph request metrics
- get_metrics_response(): Response body for the /metrics route
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Graph Metrics ────────────────────────────────────────────────────────────

graph_requests_total = Counter(
    "graph_requests_total",
    "Total Microsoft Graph API requests",
    ["operation", "outcome"],
)

graph_request_duration_seconds = Histogram(
    "graph_request_duration_seconds",
    "Microsoft Graph API request duration in seconds",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        # Route pattern once routing has matched, raw path otherwise
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── Graph Metrics Helper ─────────────────────────────────────────────────────


@asynccontextmanager
async def track_graph_call(operation: str) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that tracks one logical Graph operation.

    Usage:
        async with track_graph_call("list_transcripts") as tracker:
            data = await fetch(...)
            tracker["outcome"] = "empty" if not data else "success"

    Records duration and a request count labelled by outcome. The outcome
    defaults to "success" and becomes "error" when the body raises.
    """
    tracker: dict[str, Any] = {"outcome": "success"}
    start_time = time.perf_counter()

    try:
        yield tracker
    except Exception:
        tracker["outcome"] = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time
        graph_requests_total.labels(
            operation=operation,
            outcome=tracker["outcome"],
        ).inc()
        graph_request_duration_seconds.labels(operation=operation).observe(duration)


def get_metrics_response() -> Response:
    """Render the default Prometheus registry."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
