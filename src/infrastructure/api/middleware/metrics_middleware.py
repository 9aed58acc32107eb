"""Metrics middleware for recording HTTP request metrics.

Records Prometheus metrics for all HTTP requests including duration,
status codes, and endpoints.
"""

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.infrastructure.observability.metrics import record_http_request

UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to record HTTP request metrics.

    Labels: method, endpoint, status_code. Instance, event and task ids are
    collapsed to {id} to keep cardinality bounded.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        record_http_request(
            method=request.method,
            endpoint=self._normalize_endpoint(request),
            status_code=response.status_code,
            duration=time.perf_counter() - start_time,
        )

        return response

    def _normalize_endpoint(self, request: Request) -> str:
        """Normalize endpoint path for metrics.

        Examples:
            /api/v1/instances/123e4567-e89b-12d3-a456-426614174000 -> /api/v1/instances/{id}
            /api/v1/events/123e4567-e89b-12d3-a456-426614174000/complete -> /api/v1/events/{id}/complete
        """
        route = request.scope.get("route")
        if route is not None and hasattr(route, "path"):
            return route.path

        return UUID_PATTERN.sub("{id}", request.url.path)
