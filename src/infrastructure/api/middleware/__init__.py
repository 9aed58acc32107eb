"""API middleware components.

This module contains middleware for authentication, error handling,
request logging and metrics.
"""

from .auth import get_acting_identity, verify_api_key
from .error_handler import ErrorHandlerMiddleware, lifecycle_exception_handler
from .logging_middleware import LoggingMiddleware
from .metrics_middleware import MetricsMiddleware

__all__ = [
    "verify_api_key",
    "get_acting_identity",
    "ErrorHandlerMiddleware",
    "lifecycle_exception_handler",
    "LoggingMiddleware",
    "MetricsMiddleware",
]
