"""Structured logging configuration with OpenTelemetry integration.

Configures structlog for JSON logging with correlation IDs from trace context.
Masks credentials (API keys, tokens) before anything is rendered.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from src.infrastructure.config import get_settings

SENSITIVE_KEYS = frozenset(
    {
        "api_key",
        "apikey",
        "token",
        "password",
        "secret",
        "authorization",
        "x-api-key",
        "key_hash",
    }
)


def configure_logging() -> None:
    """Configure structured logging with structlog.

    Sets up:
    - JSON logging format (when enabled)
    - Correlation IDs from OpenTelemetry trace context
    - Log level from configuration
    - Standard library logging integration
    """
    settings = get_settings()
    otel_config = settings.observability

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, otel_config.log_level.upper(), logging.INFO),
    )

    processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_trace_context,
        filter_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if otel_config.log_json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_trace_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add trace_id and span_id of the active span, if any."""
    span = trace.get_current_span()
    if span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            event_dict["trace_id"] = format(span_context.trace_id, "032x")
            event_dict["span_id"] = format(span_context.span_id, "016x")

    return event_dict


def filter_sensitive_data(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask credential values in log events, including nested dicts.

    Strings longer than four characters keep their first four characters;
    everything else becomes ***REDACTED***.
    """

    def mask_value(key: str, value: Any) -> Any:
        if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
            if isinstance(value, str) and len(value) > 4:
                return f"{value[:4]}{'*' * (len(value) - 4)}"
            return "***REDACTED***"
        return value

    def filter_dict(d: dict[str, Any]) -> dict[str, Any]:
        return {
            k: mask_value(k, filter_dict(v) if isinstance(v, dict) else v)
            for k, v in d.items()
        }

    return filter_dict(event_dict)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("transition_committed", service_instance_id="...", action="RENEW")
    """
    return structlog.get_logger(name)
