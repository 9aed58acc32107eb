"""
FastAPI application entry point.

Sets up the FastAPI app, registers routes, middleware, and exception handlers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from src.domain.exceptions import LifecycleError
from src.infrastructure.config import get_settings
from src.infrastructure.database.config import dispose_db, get_engine, init_db
from src.infrastructure.observability import (
    configure_logging,
    instrument_fastapi_app,
    setup_tracing,
)

from .middleware.error_handler import (
    STATUS_TEXTS,
    ErrorHandlerMiddleware,
    get_correlation_id,
    lifecycle_exception_handler,
    problem_response,
)
from .middleware.logging_middleware import LoggingMiddleware
from .middleware.metrics_middleware import MetricsMiddleware
from .routes import (
    health,
    lifecycle_tasks,
    scheduled_events,
    service_instances,
    transition_rules,
)
from .schemas.error_schema import ERROR_TYPE_BASE, ProblemDetails


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Startup: configure logging, initialize the database pool, set up tracing.
    Shutdown: dispose the database pool.
    """
    configure_logging()

    db_settings = get_settings().database
    await init_db(echo=db_settings.echo)

    setup_tracing(engine=get_engine())

    yield

    await dispose_db()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Service Lifecycle Engine API",
        description=(
            "Role-gated lifecycle state machine for client service instances, with an "
            "append-only history, scheduled transitions and ancillary tasks."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # Cannot use credentials with wildcard origins
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Order matters: last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)  # Outermost: catches all errors

    app.include_router(health.router, prefix="/api/v1")
    app.include_router(
        service_instances.router, prefix="/api/v1/instances", tags=["Service Instances"]
    )
    app.include_router(
        scheduled_events.router, prefix="/api/v1/events", tags=["Scheduled Events"]
    )
    app.include_router(
        lifecycle_tasks.router, prefix="/api/v1/tasks", tags=["Lifecycle Tasks"]
    )
    app.include_router(
        transition_rules.router, prefix="/api/v1/transition-rules", tags=["Transition Rules"]
    )

    app.add_exception_handler(LifecycleError, lifecycle_exception_handler)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Convert HTTPException to RFC 7807 Problem Details."""
        problem = ProblemDetails(
            type="about:blank",
            title=STATUS_TEXTS.get(exc.status_code, "Error"),
            status=exc.status_code,
            detail=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            instance=request.url.path,
            correlation_id=get_correlation_id(request),
        )
        return problem_response(problem, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Convert request validation errors to RFC 7807 Problem Details."""
        problem = ProblemDetails(
            type=f"{ERROR_TYPE_BASE}/validation",
            title="Unprocessable Entity",
            status=422,
            detail="Request validation failed",
            instance=request.url.path,
            correlation_id=get_correlation_id(request),
            errors=[
                {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ],
        )
        return problem_response(problem)

    @app.get("/", status_code=status.HTTP_200_OK)
    async def root() -> JSONResponse:
        """Root endpoint - API information."""
        return JSONResponse(
            {
                "name": "Service Lifecycle Engine API",
                "version": "1.0.0",
                "status": "operational",
                "docs": "/docs",
            }
        )

    instrument_fastapi_app(app)

    return app


app = create_app()


def serve() -> None:
    """Run the API under uvicorn with the API_* settings."""
    import uvicorn

    api_settings = get_settings().api
    uvicorn.run(
        "src.infrastructure.api.main:app",
        host=api_settings.host,
        port=api_settings.port,
        workers=api_settings.workers,
    )
