"""Logging middleware for structured request/response logging.

Logs all HTTP requests with correlation IDs, duration, and status codes.
Never logs headers, so API keys stay out of the logs.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses.

    Logs method, path, status code, duration, client IP, the correlation id
    and, once authenticated, the API client and acting user.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        start_time = time.perf_counter()

        method = request.method
        path = request.url.path
        client_ip = self._get_client_ip(request)

        logger.info(
            "HTTP request received",
            method=method,
            path=path,
            client_ip=client_ip,
            query_params=str(request.query_params) if request.query_params else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "HTTP request failed",
                method=method,
                path=path,
                duration_ms=round(duration_ms, 2),
                client_ip=client_ip,
                error=str(e),
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "HTTP request completed",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
            client_ip=client_ip,
            correlation_id=getattr(request.state, "correlation_id", None),
            api_client=getattr(request.state, "client_id", None),
            actor_id=getattr(request.state, "actor_id", None),
        )
        return response

    def _get_client_ip(self, request: Request) -> str:
        """Client IP, preferring the first X-Forwarded-For hop."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"
