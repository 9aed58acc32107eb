"""E2E test fixtures for API layer testing."""

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.infrastructure.api.main import app
from src.infrastructure.api.middleware.auth import hash_api_key
from src.infrastructure.config import reset_settings
from src.infrastructure.database.config import (
    dispose_db,
    get_engine,
    get_session_factory,
    init_db,
)
from src.infrastructure.database.models import ApiKeyModel, Base

TEST_API_KEY = "test-api-key-123456789"


@pytest_asyncio.fixture(scope="function", autouse=True)
async def ensure_database():
    """Give each test a fresh in-memory database.

    Re-initializes the engine for each test to avoid 'Future attached to a
    different loop' errors when pytest-asyncio creates a new event loop per
    test function. httpx's ASGITransport does not run the app lifespan, so
    the schema is created here.
    """
    reset_settings()
    await dispose_db()
    await init_db(database_url="sqlite+aiosqlite://")

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    await dispose_db()


@pytest_asyncio.fixture
async def test_api_key() -> str:
    """Create a test API key and return the raw key."""
    async with get_session_factory()() as session:
        session.add(
            ApiKeyModel(
                name="test-key",
                key_hash=hash_api_key(TEST_API_KEY),
            )
        )
        await session.commit()

    return TEST_API_KEY


def actor(user_id: str, role: str) -> dict[str, str]:
    """Headers asserting the acting user and role."""
    return {"X-Actor-Id": user_id, "X-Actor-Role": role}


@pytest_asyncio.fixture
async def async_client(test_api_key: str) -> AsyncGenerator[AsyncClient, None]:
    """Provide an authenticated client acting as admin-1 (ADMIN)."""
    transport = ASGITransport(app=app)

    async with AsyncClient(
        transport=transport,
        base_url="http://testserver",
        headers={"Authorization": f"Bearer {test_api_key}", **actor("admin-1", "ADMIN")},
    ) as client:
        yield client


@pytest_asyncio.fixture
async def async_client_no_auth() -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client without authentication."""
    transport = ASGITransport(app=app)

    async with AsyncClient(
        transport=transport,
        base_url="http://testserver",
        headers=actor("admin-1", "ADMIN"),
    ) as client:
        yield client


@pytest_asyncio.fixture
async def active_instance(async_client: AsyncClient) -> dict:
    """An ACTIVE service instance provisioned by an admin."""
    response = await async_client.post(
        "/api/v1/instances",
        json={"client_id": "client-42", "service_id": "managed-backup", "initial_state": "ACTIVE"},
    )
    assert response.status_code == 201
    return response.json()
