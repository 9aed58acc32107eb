"""E2E tests for the service instance lifecycle API."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from src.infrastructure.api.schemas.error_schema import ERROR_TYPE_BASE
from src.infrastructure.database.config import get_session_factory
from src.infrastructure.database.models import ApiKeyModel

CLIENT = {"X-Actor-Id": "client-user", "X-Actor-Role": "CLIENT"}
STAFF = {"X-Actor-Id": "staff-7", "X-Actor-Role": "STAFF"}


async def _transition(client: AsyncClient, instance_id, expected, action, headers=None, **extra):
    return await client.post(
        f"/api/v1/instances/{instance_id}/transitions",
        json={"expected_state": expected, "action": action, **extra},
        headers=headers,
    )


class TestHealthEndpoints:
    """Test health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_ready_endpoint(self, async_client_no_auth: AsyncClient):
        """Test readiness probe against the test database."""
        response = await async_client_no_auth.get("/api/v1/health/ready")

        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "healthy"


class TestAuthentication:
    """Test API authentication and acting identity."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self, async_client_no_auth: AsyncClient):
        """Test that requests without API key are rejected."""
        response = await async_client_no_auth.get(f"/api/v1/instances/{uuid4()}")

        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/problem+json")
        data = response.json()
        assert data["type"] == "about:blank"
        assert data["title"] == "Unauthorized"
        assert "correlation_id" in data

    @pytest.mark.asyncio
    async def test_invalid_api_key(self, async_client_no_auth: AsyncClient):
        """Test that an unknown key is rejected."""
        response = await async_client_no_auth.get(
            f"/api/v1/instances/{uuid4()}",
            headers={"Authorization": "Bearer invalid-key"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_role_header(self, async_client: AsyncClient):
        """Test that a role outside the role set fails validation."""
        response = await async_client.post(
            "/api/v1/instances",
            json={"client_id": "client-42", "service_id": "backup"},
            headers={"X-Actor-Role": "JANITOR"},
        )

        assert response.status_code == 422
        data = response.json()
        assert data["type"] == f"{ERROR_TYPE_BASE}/validation"
        assert data["errors"]

    @pytest.mark.asyncio
    async def test_key_use_recorded_when_request_is_rejected(
        self, async_client: AsyncClient, active_instance
    ):
        """Test that last_used_at is committed before the handler runs."""
        async with get_session_factory()() as session:
            key = (await session.execute(select(ApiKeyModel))).scalar_one()
            key.last_used_at = None
            await session.commit()

        response = await _transition(
            async_client, active_instance["id"], "ACTIVE", "SUSPEND", CLIENT
        )

        assert response.status_code == 403
        async with get_session_factory()() as session:
            key = (await session.execute(select(ApiKeyModel))).scalar_one()
            assert key.last_used_at is not None


class TestProvisioning:
    """Test service instance provisioning."""

    @pytest.mark.asyncio
    async def test_client_requests_service(self, async_client: AsyncClient):
        """Test that a client may provision in REQUESTED without history."""
        response = await async_client.post(
            "/api/v1/instances",
            json={"client_id": "client-42", "service_id": "managed-backup"},
            headers=CLIENT,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["current_state"] == "REQUESTED"
        assert data["version"] == 0
        assert data["created_by"] == "client-user"

        history = await async_client.get(f"/api/v1/instances/{data['id']}/history")
        assert history.json()["entries"] == []

    @pytest.mark.asyncio
    async def test_client_cannot_provision_active(self, async_client: AsyncClient):
        """Test that only REQUESTED is open to clients."""
        response = await async_client.post(
            "/api/v1/instances",
            json={"client_id": "client-42", "service_id": "backup", "initial_state": "ACTIVE"},
            headers=CLIENT,
        )

        assert response.status_code == 403
        assert response.json()["type"] == f"{ERROR_TYPE_BASE}/unauthorized-transition"

    @pytest.mark.asyncio
    async def test_unknown_instance(self, async_client: AsyncClient):
        """Test 404 for an unknown instance."""
        response = await async_client.get(f"/api/v1/instances/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["type"] == f"{ERROR_TYPE_BASE}/not-found"


class TestTransitions:
    """Test immediate transitions."""

    @pytest.mark.asyncio
    async def test_request_to_active(self, async_client: AsyncClient):
        """Test the approval path through onboarding."""
        created = await async_client.post(
            "/api/v1/instances",
            json={"client_id": "client-42", "service_id": "backup"},
            headers=CLIENT,
        )
        instance_id = created.json()["id"]

        first = await _transition(async_client, instance_id, "REQUESTED", "APPROVE")
        second = await _transition(
            async_client, instance_id, "ONBOARDING", "APPROVE", STAFF, comments="Checklist done"
        )

        assert first.status_code == 200
        assert second.status_code == 200
        data = second.json()
        assert data["previous_state"] == "ONBOARDING"
        assert data["new_state"] == "ACTIVE"
        assert data["version"] == 2
        assert data["history_entry"]["performed_by"] == "staff-7"
        assert data["history_entry"]["performed_by_role"] == "STAFF"
        assert data["history_entry"]["comments"] == "Checklist done"

    @pytest.mark.asyncio
    async def test_history_newest_first(self, async_client: AsyncClient, active_instance):
        """Test history ordering and limit."""
        instance_id = active_instance["id"]
        await _transition(async_client, instance_id, "ACTIVE", "SUSPEND")
        await _transition(async_client, instance_id, "SUSPENDED", "REINSTATE")

        response = await async_client.get(f"/api/v1/instances/{instance_id}/history")
        limited = await async_client.get(
            f"/api/v1/instances/{instance_id}/history", params={"limit": 1}
        )

        assert [e["action"] for e in response.json()["entries"]] == ["REINSTATE", "SUSPEND"]
        assert [e["action"] for e in limited.json()["entries"]] == ["REINSTATE"]

    @pytest.mark.asyncio
    async def test_client_cannot_suspend(self, async_client: AsyncClient, active_instance):
        """Test that a role outside the rule is refused and nothing changes."""
        instance_id = active_instance["id"]

        response = await _transition(async_client, instance_id, "ACTIVE", "SUSPEND", CLIENT)

        assert response.status_code == 403
        data = response.json()
        assert data["role"] == "CLIENT"
        assert data["action"] == "SUSPEND"
        instance = await async_client.get(f"/api/v1/instances/{instance_id}")
        assert instance.json()["current_state"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_undefined_action(self, async_client: AsyncClient, active_instance):
        """Test 409 for an action not defined from the state."""
        response = await _transition(async_client, active_instance["id"], "ACTIVE", "APPROVE")

        assert response.status_code == 409
        data = response.json()
        assert data["type"] == f"{ERROR_TYPE_BASE}/invalid-transition"
        assert data["state"] == "ACTIVE"
        assert data["action"] == "APPROVE"

    @pytest.mark.asyncio
    async def test_stale_expected_state(self, async_client: AsyncClient, active_instance):
        """Test that a caller with an old read gets a conflict naming the live state."""
        instance_id = active_instance["id"]
        await _transition(async_client, instance_id, "ACTIVE", "SUSPEND")

        response = await _transition(async_client, instance_id, "ACTIVE", "TERMINATE")

        assert response.status_code == 409
        data = response.json()
        assert data["type"] == f"{ERROR_TYPE_BASE}/concurrency-conflict"
        assert data["actual_state"] == "SUSPENDED"

    @pytest.mark.asyncio
    async def test_unknown_action_body(self, async_client: AsyncClient, active_instance):
        """Test that an unknown action is a validation error."""
        response = await _transition(async_client, active_instance["id"], "ACTIVE", "EXPLODE")

        assert response.status_code == 422


class TestReadSide:
    """Test valid actions, overview and transition rules."""

    @pytest.mark.asyncio
    async def test_valid_actions_by_role(self, async_client: AsyncClient, active_instance):
        """Test that valid actions depend on the acting role."""
        url = f"/api/v1/instances/{active_instance['id']}/valid-actions"

        as_client = await async_client.get(url, headers=CLIENT)
        as_staff = await async_client.get(url, headers=STAFF)

        assert as_client.json()["valid_actions"] == ["REQUEST_RENEWAL"]
        assert as_staff.json()["valid_actions"] == ["START_MAINTENANCE", "RENEW"]
        assert as_staff.json()["role"] == "STAFF"

    @pytest.mark.asyncio
    async def test_overview_hides_tasks_from_clients(
        self, async_client: AsyncClient, active_instance
    ):
        """Test that open tasks are only shown to ADMIN and STAFF."""
        instance_id = active_instance["id"]
        event = await async_client.post(
            f"/api/v1/instances/{instance_id}/events",
            json={"current_state": "ACTIVE", "action": "RENEW"},
        )
        await async_client.post(
            f"/api/v1/events/{event.json()['id']}/tasks", json={"title": "Prepare invoice"}
        )

        as_admin = await async_client.get(f"/api/v1/instances/{instance_id}/overview")
        as_client = await async_client.get(
            f"/api/v1/instances/{instance_id}/overview", headers=CLIENT
        )

        assert as_admin.status_code == 200
        assert [t["title"] for t in as_admin.json()["pending_tasks"]] == ["Prepare invoice"]
        assert len(as_admin.json()["pending_events"]) == 1
        assert as_admin.json()["is_terminal"] is False
        assert as_client.json()["pending_tasks"] == []
        assert as_client.json()["valid_actions"] == ["REQUEST_RENEWAL"]

    @pytest.mark.asyncio
    async def test_transition_rules(self, async_client: AsyncClient):
        """Test that the rule table is exposed with roles."""
        response = await async_client.get("/api/v1/transition-rules")

        assert response.status_code == 200
        rules = {(r["from_state"], r["action"]): r for r in response.json()}
        assert rules[("ONBOARDING", "APPROVE")]["to_state"] == "ACTIVE"
        assert rules[("ONBOARDING", "APPROVE")]["roles"] == ["ADMIN", "STAFF"]
        assert ("ACTIVE", "APPROVE") not in rules
