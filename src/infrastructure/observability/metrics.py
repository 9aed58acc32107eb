"""Prometheus metrics instrumentation.

Defines and exports Prometheus metrics for monitoring the application.
Avoids high cardinality by omitting instance and user ids from labels.
"""

from prometheus_client import Counter, Gauge, Histogram
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

# HTTP Request Metrics
http_requests_total = Counter(
    name="lifecycle_engine_http_requests_total",
    documentation="Total number of HTTP requests",
    labelnames=["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    name="lifecycle_engine_http_request_duration_seconds",
    documentation="HTTP request duration in seconds",
    labelnames=["method", "endpoint", "status_code"],
    buckets=(
        0.005,  # 5ms
        0.01,  # 10ms
        0.025,  # 25ms
        0.05,  # 50ms
        0.1,  # 100ms
        0.25,  # 250ms
        0.5,  # 500ms
        1.0,  # 1s
        2.5,  # 2.5s
        5.0,  # 5s
    ),
)

# Database Metrics
db_connections_active = Gauge(
    name="lifecycle_engine_db_connections_active",
    documentation="Current number of checked-out database connections",
)

db_pool_size = Gauge(
    name="lifecycle_engine_db_pool_size",
    documentation="Configured database connection pool size",
)

# Lifecycle Metrics
instances_provisioned_total = Counter(
    name="lifecycle_engine_instances_provisioned_total",
    documentation="Total number of service instances provisioned",
    labelnames=["initial_state"],
)

lifecycle_transitions_total = Counter(
    name="lifecycle_engine_transitions_total",
    documentation="Total number of lifecycle transition attempts",
    # outcome: committed, conflict, or the rejecting error class name
    labelnames=["action", "outcome"],
)

scheduled_event_operations_total = Counter(
    name="lifecycle_engine_scheduled_event_operations_total",
    documentation="Total number of scheduled event operations",
    labelnames=["operation"],  # created, completed, cancelled
)

task_operations_total = Counter(
    name="lifecycle_engine_task_operations_total",
    documentation="Total number of lifecycle task operations",
    labelnames=["operation"],  # created, started, blocked, completed
)


def get_metrics_content() -> tuple[bytes, str]:
    """Generate Prometheus metrics in exposition format.

    Returns:
        Tuple of (metrics_bytes, content_type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST


def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration: float,
) -> None:
    """Record HTTP request metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        endpoint: API endpoint path
        status_code: HTTP status code
        duration: Request duration in seconds
    """
    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status_code=str(status_code),
    ).inc()

    http_request_duration_seconds.labels(
        method=method,
        endpoint=endpoint,
        status_code=str(status_code),
    ).observe(duration)


def update_db_pool_metrics(active: int, pool_size: int) -> None:
    """Update database connection pool metrics."""
    db_connections_active.set(active)
    db_pool_size.set(pool_size)


def record_instance_provisioned(initial_state: str) -> None:
    """Record a provisioned service instance.

    Args:
        initial_state: State the instance was created in
    """
    instances_provisioned_total.labels(initial_state=initial_state).inc()


def record_lifecycle_transition(action: str, outcome: str) -> None:
    """Record a lifecycle transition attempt.

    Args:
        action: Lifecycle action name
        outcome: committed, conflict, or the rejecting error class name
    """
    lifecycle_transitions_total.labels(action=action, outcome=outcome).inc()


def record_scheduled_event_operation(operation: str) -> None:
    """Record a scheduled event operation (created, completed, cancelled)."""
    scheduled_event_operations_total.labels(operation=operation).inc()


def record_task_operation(operation: str) -> None:
    """Record a task operation (created, started, blocked, completed)."""
    task_operations_total.labels(operation=operation).inc()
