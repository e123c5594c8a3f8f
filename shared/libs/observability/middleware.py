"""
FastAPI middleware for Prometheus metrics collection.
"""

import re
import time
from typing import Awaitable, Callable

from fastapi import Request, Response

from shared.libs.observability.metrics import (
    ACTIVE_REQUESTS,
    EXCEPTION_COUNT,
    REQUEST_COUNT,
    REQUEST_DURATION,
)

UUID_SEGMENT = re.compile(r"/[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}")


def endpoint_label(request: Request) -> str:
    """Route template when routing matched (/categories/{category_id}), else the
    raw path with UUID segments collapsed."""
    route = request.scope.get("route")
    path_format = getattr(route, "path_format", None)
    if path_format:
        return path_format
    return UUID_SEGMENT.sub("/{id}", request.url.path)


async def metrics_middleware(
    request: Request, call_next: Callable[..., Awaitable[Response]]
) -> Response:
    """
    Middleware to collect HTTP request metrics.

    Tracks:
    - Request count
    - Request duration
    - Active requests
    - Exceptions (by type)
    """
    method = request.method
    active_path = UUID_SEGMENT.sub("/{id}", request.url.path)

    ACTIVE_REQUESTS.labels(method=method, endpoint=active_path).inc()
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as e:
        EXCEPTION_COUNT.labels(
            exception_type=type(e).__name__,
            method=method,
            endpoint=endpoint_label(request),
        ).inc()
        raise
    finally:
        duration = time.perf_counter() - start_time
        ACTIVE_REQUESTS.labels(method=method, endpoint=active_path).dec()

        endpoint = endpoint_label(request)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    return response
