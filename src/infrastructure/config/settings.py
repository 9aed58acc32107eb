"""Application configuration using Pydantic Settings.

All environment variables should be accessed through this module.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.domain.entities.service_instance import Priority


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_prefix="DB_", case_sensitive=False)

    url: str = Field(
        ...,
        alias="DATABASE_URL",
        description="Async SQLAlchemy URL (postgresql+asyncpg://, sqlite+aiosqlite://)",
    )
    pool_size: int = Field(
        default=20,
        description="Connection pool size (ignored for SQLite)",
    )
    max_overflow: int = Field(
        default=10,
        description="Maximum number of connections to create above pool_size",
    )
    echo: bool = Field(
        default=False,
        description="Enable SQL query logging (development only)",
    )


class APISettings(BaseSettings):
    """API server configuration settings."""

    model_config = SettingsConfigDict(env_prefix="API_", case_sensitive=False)

    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server",
    )
    port: int = Field(
        default=8000,
        description="Port to bind the API server",
    )
    workers: int = Field(
        default=4,
        description="Number of Uvicorn worker processes",
    )


class ObservabilitySettings(BaseSettings):
    """Observability configuration settings (OpenTelemetry, logging, metrics)."""

    model_config = SettingsConfigDict(env_prefix="OTEL_", case_sensitive=False)

    # OpenTelemetry Tracing
    exporter_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        description="OTLP exporter endpoint (gRPC)",
    )
    service_name: str = Field(
        default="lifecycle-engine",
        description="Service name for traces and metrics",
    )
    trace_sample_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )
    tracing_enabled: bool = Field(
        default=True,
        description="Export traces over OTLP",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json_format: bool = Field(
        default=True,
        description="Enable JSON structured logging",
    )


class LifecycleSettings(BaseSettings):
    """Lifecycle engine behaviour settings."""

    model_config = SettingsConfigDict(env_prefix="LIFECYCLE_", case_sensitive=False)

    history_default_limit: int | None = Field(
        default=None,
        ge=1,
        description="History entries returned when the caller gives no limit (None = all)",
    )
    default_priority: Priority = Field(
        default=Priority.MEDIUM,
        description="Priority for events and tasks created without one",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration modules and provides a single settings object.
    Load from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    api: APISettings = Field(default_factory=APISettings)
    observability: ObservabilitySettings = Field(
        default_factory=ObservabilitySettings
    )
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)


# Global settings instance (singleton)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton pattern).

    Returns:
        Settings instance loaded from environment
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
