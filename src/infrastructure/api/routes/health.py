"""
Health check endpoints.

Provides liveness and readiness probes for Kubernetes.
Also provides Prometheus metrics endpoint.
"""

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from src.infrastructure.database.health import check_database_health, get_pool_stats
from src.infrastructure.observability.metrics import (
    get_metrics_content,
    update_db_pool_metrics,
)

router = APIRouter()


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Check if the service is alive",
    tags=["Health"],
)
async def liveness() -> dict:
    """
    Liveness probe - check if the process is running.

    This endpoint always returns 200 if the process is alive.
    """
    return {
        "status": "healthy",
        "service": "service-lifecycle-engine",
    }


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    description="Check if the service is ready to accept traffic",
    tags=["Health"],
    responses={
        200: {"description": "Service is ready"},
        503: {"description": "Service is not ready (database unavailable)"},
    },
)
async def readiness() -> JSONResponse:
    """
    Readiness probe - check if the lifecycle store is reachable.

    Returns 200 if all dependencies are healthy, 503 otherwise.
    """
    db_healthy = await check_database_health()
    checks = {"database": "healthy" if db_healthy else "unhealthy"}

    if db_healthy:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "ready", "checks": checks},
        )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "checks": checks},
    )


@router.get(
    "/metrics",
    status_code=status.HTTP_200_OK,
    summary="Prometheus metrics",
    description="Export Prometheus metrics in exposition format",
    tags=["Observability"],
    response_class=Response,
)
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Metrics include HTTP request counts and durations, transition attempts
    by action and outcome, event and task operations, and pool usage.
    """
    pool_stats = get_pool_stats()
    if pool_stats is not None:
        update_db_pool_metrics(*pool_stats)

    metrics_bytes, content_type = get_metrics_content()

    return Response(
        content=metrics_bytes,
        media_type=content_type,
    )
