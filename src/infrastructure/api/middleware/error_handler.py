"""Global error handling middleware.

Converts all exceptions to RFC 7807 Problem Details format for consistent error responses.
Includes correlation IDs for request tracing.
"""

import logging
import uuid

from fastapi import Request, status
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.middleware.base import BaseHTTPMiddleware

from src.domain.exceptions import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    PersistenceFailureError,
    UnauthorizedTransitionError,
)
from src.infrastructure.api.schemas.error_schema import ERROR_TYPE_BASE, ProblemDetails

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

STATUS_TEXTS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}

# (status, slug, title) per lifecycle error class
LIFECYCLE_ERROR_MAP: dict[type[LifecycleError], tuple[int, str, str]] = {
    InvalidTransitionError: (409, "invalid-transition", "Invalid Transition"),
    ConcurrencyConflictError: (409, "concurrency-conflict", "Concurrency Conflict"),
    UnauthorizedTransitionError: (403, "unauthorized-transition", "Unauthorized Transition"),
    NotFoundError: (404, "not-found", "Not Found"),
    PersistenceFailureError: (503, "persistence-failure", "Persistence Failure"),
}


def get_correlation_id(request: Request) -> str:
    """Correlation id of the request, created on first use."""
    correlation_id = getattr(request.state, "correlation_id", None)
    if not correlation_id:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
    return correlation_id


def _label(value) -> str | None:
    if value is None:
        return None
    return getattr(value, "value", str(value))


def lifecycle_error_to_problem(
    exc: LifecycleError, request: Request, correlation_id: str
) -> ProblemDetails:
    """Map a LifecycleError to Problem Details."""
    status_code, slug, title = LIFECYCLE_ERROR_MAP.get(
        type(exc), (500, "lifecycle-error", "Lifecycle Error")
    )
    detail = str(exc)
    if isinstance(exc, PersistenceFailureError):
        detail = "The lifecycle store is temporarily unavailable"

    return ProblemDetails(
        type=f"{ERROR_TYPE_BASE}/{slug}",
        title=title,
        status=status_code,
        detail=detail,
        instance=request.url.path,
        correlation_id=correlation_id,
        state=_label(getattr(exc, "state", None) or getattr(exc, "expected_state", None)),
        action=_label(getattr(exc, "action", None)),
        role=_label(getattr(exc, "role", None)),
        actual_state=_label(getattr(exc, "actual_state", None)),
    )


def problem_response(problem: ProblemDetails, headers: dict | None = None) -> JSONResponse:
    """Create JSONResponse from ProblemDetails."""
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(mode="json", exclude_none=True),
        media_type="application/problem+json",
        headers={CORRELATION_HEADER: problem.correlation_id or "", **(headers or {})},
    )


async def lifecycle_exception_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    """FastAPI exception handler for LifecycleError."""
    correlation_id = get_correlation_id(request)
    problem = lifecycle_error_to_problem(exc, request, correlation_id)
    if problem.status >= 500:
        logger.error(
            f"Lifecycle store failure with correlation_id={correlation_id}: {exc}",
            exc_info=exc,
        )
    else:
        logger.info(f"Lifecycle request rejected ({problem.status}): {exc}")
    return problem_response(problem)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware to handle all exceptions and return RFC 7807 Problem Details."""

    async def dispatch(self, request: Request, call_next):
        """Catch all exceptions and convert to Problem Details format."""
        correlation_id = get_correlation_id(request)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as exc:
            logger.error(
                f"Request failed with correlation_id={correlation_id}",
                exc_info=exc,
                extra={
                    "correlation_id": correlation_id,
                    "path": request.url.path,
                    "method": request.method,
                },
            )

            problem = self._exception_to_problem(exc, request, correlation_id)
            return problem_response(problem)

    def _exception_to_problem(
        self, exc: Exception, request: Request, correlation_id: str
    ) -> ProblemDetails:
        """Convert exception to RFC 7807 Problem Details."""
        if isinstance(exc, LifecycleError):
            return lifecycle_error_to_problem(exc, request, correlation_id)

        if isinstance(exc, HTTPException):
            return ProblemDetails(
                type="about:blank",
                title=STATUS_TEXTS.get(exc.status_code, "Error"),
                status=exc.status_code,
                detail=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
                instance=request.url.path,
                correlation_id=correlation_id,
            )

        if isinstance(exc, ValueError):
            return ProblemDetails(
                type="https://httpstatuses.com/400",
                title="Bad Request",
                status=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
                instance=request.url.path,
                correlation_id=correlation_id,
            )

        if isinstance(exc, OperationalError):
            return ProblemDetails(
                type="https://httpstatuses.com/503",
                title="Service Unavailable",
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database is temporarily unavailable",
                instance=request.url.path,
                correlation_id=correlation_id,
            )

        return ProblemDetails(
            type="https://httpstatuses.com/500",
            title="Internal Server Error",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
            instance=request.url.path,
            correlation_id=correlation_id,
        )
