"""
Prometheus metrics definitions and FastAPI instrumentation.

Defines the assistant's business counters (anomalies found, what-if
simulations run) and a ``setup_metrics`` function that wires automatic
request tracking and a ``/metrics`` endpoint into a FastAPI application.
"""

from __future__ import annotations

import time
from collections.abc import Iterable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response as StarletteResponse

from domain.models.anomaly import AnomalyRecord

# ======================================================================
# Custom metrics (module-level singletons)
# ======================================================================

api_requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    labelnames=["method", "endpoint", "status"],
    registry=REGISTRY,
)

api_request_duration_seconds = Histogram(
    "api_request_duration_seconds",
    "Request latency in seconds",
    labelnames=["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

anomalies_detected_total = Counter(
    "anomalies_detected_total",
    "Total bill anomalies reported",
    labelnames=["type", "severity"],
    registry=REGISTRY,
)

anomaly_risk_score = Histogram(
    "anomaly_risk_score",
    "Risk score of analysed bills",
    buckets=(0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10),
    registry=REGISTRY,
)

what_if_simulations_total = Counter(
    "what_if_simulations_total",
    "Total what-if simulations by outcome",
    labelnames=["outcome"],
    registry=REGISTRY,
)


# ======================================================================
# Recording helpers
# ======================================================================


def record_anomalies(anomalies: Iterable[AnomalyRecord], risk_score: int) -> None:
    for anomaly in anomalies:
        anomalies_detected_total.labels(
            type=anomaly.type.value,
            severity=anomaly.severity.value,
        ).inc()
    anomaly_risk_score.observe(risk_score)


def record_simulation(outcome: str, count: int = 1) -> None:
    """Count simulations by outcome label (``saving``, ``no_saving``, ``compared``, ``error``)."""
    what_if_simulations_total.labels(outcome=outcome).inc(count)


# ======================================================================
# Middleware for automatic request instrumentation
# ======================================================================

class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware that records request count and latency per endpoint."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        method = request.method
        start = time.perf_counter()
        response: Response = await call_next(request)
        duration = time.perf_counter() - start

        # Route is only resolved once the router has run.
        endpoint = self._get_path_template(request)

        api_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=str(response.status_code),
        ).inc()
        api_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

        return response

    @staticmethod
    def _get_path_template(request: Request) -> str:
        """
        Resolve the route template (e.g. ``/api/v1/bills/{bill_id}``) so
        that label cardinality stays bounded.
        """
        route = request.scope.get("route")
        if route and hasattr(route, "path"):
            return route.path
        return "unmatched"


# ======================================================================
# Setup helper
# ======================================================================

def setup_metrics(app: FastAPI) -> None:
    """
    Instrument a FastAPI application with Prometheus metrics.

    * Adds the ``PrometheusMiddleware`` for automatic request tracking.
    * Registers a ``/metrics`` endpoint that serves the Prometheus
      exposition format.
    """

    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint() -> StarletteResponse:
        return StarletteResponse(
            content=generate_latest(REGISTRY),
            media_type=CONTENT_TYPE_LATEST,
        )
