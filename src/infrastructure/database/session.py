"""Database session helpers.

Lifecycle use cases open their own units of work; short sessions are used
for API key checks.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.config import (
    get_engine,
    get_session_factory,
    serialized,
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Open a session that commits when the block succeeds.

    The transaction ends with the block, so row locks taken inside it are
    not held for the rest of the request.

    Raises:
        RuntimeError: If database has not been initialized
    """
    session_factory = get_session_factory()

    async with serialized(get_engine()), session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
