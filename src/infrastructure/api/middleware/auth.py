"""Authentication for API key verification and acting identity.

API clients authenticate with a Bearer token checked against bcrypt-hashed
keys. The user a call acts for is asserted by the authenticated client
through the X-Actor-Id and X-Actor-Role headers.
"""

from datetime import datetime, timezone
from uuid import UUID

import bcrypt
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.dtos.lifecycle_dto import ActingIdentity
from src.domain.entities.service_instance import Role
from src.infrastructure.database.models import ApiKeyModel
from src.infrastructure.database.session import session_scope


def hash_api_key(raw_key: str) -> str:
    """Bcrypt-hash a raw API key for storage in api_keys.key_hash."""
    return bcrypt.hashpw(raw_key.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


async def verify_api_key(request: Request) -> str:
    """Verify API key from Authorization header.

    The key lookup and its last_used_at update commit in their own session
    before the route handler runs.

    Returns:
        API key name (client identifier) if valid

    Raises:
        HTTPException: 401 if API key is missing, invalid, or revoked
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    async with session_scope() as session:
        api_key_name = await _verify_key_in_db(session, parts[1])
    request.state.client_id = api_key_name
    return api_key_name


async def get_acting_identity(
    request: Request,
    actor_id: str = Header(..., alias="X-Actor-Id", min_length=1, max_length=255),
    actor_role: Role = Header(..., alias="X-Actor-Role"),
    client_id: str = Depends(verify_api_key),
) -> ActingIdentity:
    """Acting user and role for the request, from trusted headers."""
    identity = ActingIdentity(user_id=actor_id, role=actor_role)
    request.state.actor_id = identity.user_id
    return identity


async def _verify_key_in_db(session: AsyncSession, provided_key: str) -> str:
    """Verify provided key against bcrypt hashes in database.

    Raises:
        HTTPException: 401 if key is invalid or revoked
    """
    # Small table; a linear bcrypt scan is acceptable
    stmt = select(ApiKeyModel).where(ApiKeyModel.is_active.is_(True))
    result = await session.execute(stmt)
    api_keys = result.scalars().all()

    for api_key in api_keys:
        if bcrypt.checkpw(
            provided_key.encode("utf-8"), api_key.key_hash.encode("utf-8")
        ):
            await _update_last_used(session, api_key.id)
            return api_key.name

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or revoked API key",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _update_last_used(session: AsyncSession, api_key_id: UUID) -> None:
    stmt = (
        update(ApiKeyModel)
        .where(ApiKeyModel.id == api_key_id)
        .values(last_used_at=datetime.now(timezone.utc))
    )
    await session.execute(stmt)
