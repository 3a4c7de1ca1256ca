"""Prometheus metrics endpoint and request instrumentation."""

import time

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..core.metrics import (
    active_requests,
    error_count,
    registry,
    request_count,
    request_duration,
)

router = APIRouter()


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics",
    description="Pipeline, stage and HTTP metrics in Prometheus text format"
)
async def metrics():
    """Return metrics in Prometheus format."""
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)


def endpoint_label(request: Request) -> str:
    """Route template for the request, so labels stay bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware:
    """Count requests and time them per route.

    Pipeline failures come back as ordinary JSON responses, so they show up
    here as 4xx/5xx statuses; ``error_count`` only sees exceptions that
    escaped a handler.
    """

    async def __call__(self, request: Request, call_next):
        active_requests.inc()
        start_time = time.time()
        status = "500"

        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        except Exception as e:
            error_count.labels(error_type=type(e).__name__).inc()
            raise
        finally:
            endpoint = endpoint_label(request)
            request_duration.labels(method=request.method, endpoint=endpoint).observe(
                time.time() - start_time
            )
            request_count.labels(method=request.method, endpoint=endpoint, status=status).inc()
            active_requests.dec()
