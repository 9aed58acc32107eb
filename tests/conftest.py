"""Shared test configuration.

DATABASE_URL is required by the settings module; tests default it to an
in-memory SQLite database so nothing needs a running PostgreSQL.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("OTEL_TRACING_ENABLED", "false")
os.environ.setdefault("OTEL_LOG_JSON_FORMAT", "false")
