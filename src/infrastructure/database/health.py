"""Database health check module.

This module provides health check utilities for verifying database connectivity.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from src.infrastructure.database.config import get_engine, serialized

logger = logging.getLogger(__name__)


async def check_database_health(engine: AsyncEngine | None = None) -> bool:
    """Check database connectivity with a SELECT 1.

    Args:
        engine: AsyncEngine to use (defaults to global engine)

    Returns:
        True if database is healthy, False otherwise
    """
    if engine is None:
        try:
            engine = get_engine()
        except RuntimeError:
            return False

    try:
        async with serialized(engine), engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database health check failed: {e}")
        return False


def get_pool_stats(engine: AsyncEngine | None = None) -> tuple[int, int] | None:
    """Checked-out connections and configured size of the engine's pool.

    Returns:
        (checked_out, pool_size), or None when the engine is not initialized
        or its pool is not a sized pool (SQLite StaticPool)
    """
    if engine is None:
        try:
            engine = get_engine()
        except RuntimeError:
            return None

    pool = engine.sync_engine.pool
    if not hasattr(pool, "checkedout") or not hasattr(pool, "size"):
        return None
    return pool.checkedout(), pool.size()
