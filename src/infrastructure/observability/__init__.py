"""Observability infrastructure module.

Provides OpenTelemetry tracing, structured logging, and Prometheus metrics.
"""

from src.infrastructure.observability.logging import configure_logging, get_logger
from src.infrastructure.observability.metrics import (
    get_metrics_content,
    record_http_request,
    record_instance_provisioned,
    record_lifecycle_transition,
    record_scheduled_event_operation,
    record_task_operation,
    update_db_pool_metrics,
)
from src.infrastructure.observability.tracing import (
    instrument_fastapi_app,
    setup_tracing,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Tracing
    "setup_tracing",
    "instrument_fastapi_app",
    # Metrics
    "get_metrics_content",
    "record_http_request",
    "update_db_pool_metrics",
    "record_instance_provisioned",
    "record_lifecycle_transition",
    "record_scheduled_event_operation",
    "record_task_operation",
]
