"""Unit tests for lifecycle error to Problem Details mapping."""

from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.domain.entities.service_instance import LifecycleAction, LifecycleState, Role
from src.domain.exceptions import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    PersistenceFailureError,
    UnauthorizedTransitionError,
)
from src.infrastructure.api.middleware.error_handler import (
    CORRELATION_HEADER,
    ErrorHandlerMiddleware,
    lifecycle_exception_handler,
)
from src.infrastructure.api.schemas.error_schema import ERROR_TYPE_BASE

ERRORS = {
    "invalid": InvalidTransitionError(LifecycleState.SUSPENDED, LifecycleAction.RENEW),
    "conflict": ConcurrencyConflictError(
        uuid4(), LifecycleState.ACTIVE, LifecycleState.SUSPENDED
    ),
    "unauthorized": UnauthorizedTransitionError(
        LifecycleState.ACTIVE, LifecycleAction.SUSPEND, Role.CLIENT
    ),
    "missing": NotFoundError("ServiceInstance", uuid4()),
    "store": PersistenceFailureError("connection refused by 10.0.0.5"),
}


@pytest.fixture
def client():
    """Create a minimal app that raises each lifecycle error."""
    app = FastAPI()
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_exception_handler(LifecycleError, lifecycle_exception_handler)

    @app.get("/raise/{kind}")
    async def raise_error(kind: str):
        raise ERRORS[kind]

    @app.get("/crash")
    async def crash():
        raise RuntimeError("unexpected")

    return TestClient(app, raise_server_exceptions=False)


class TestLifecycleErrorMapping:
    """Tests for the HTTP mapping of the lifecycle error taxonomy."""

    @pytest.mark.parametrize(
        "kind,status,slug",
        [
            ("invalid", 409, "invalid-transition"),
            ("conflict", 409, "concurrency-conflict"),
            ("unauthorized", 403, "unauthorized-transition"),
            ("missing", 404, "not-found"),
            ("store", 503, "persistence-failure"),
        ],
    )
    def test_status_and_type(self, client, kind, status, slug):
        """Test that each error class maps to its status and problem type."""
        response = client.get(f"/raise/{kind}")

        assert response.status_code == status
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["type"] == f"{ERROR_TYPE_BASE}/{slug}"
        assert body["status"] == status
        assert body["instance"] == f"/raise/{kind}"
        assert body["correlation_id"]

    def test_invalid_transition_carries_state_and_action(self, client):
        """Test that invalid transitions name the state and action."""
        body = client.get("/raise/invalid").json()

        assert body["state"] == "SUSPENDED"
        assert body["action"] == "RENEW"

    def test_conflict_carries_actual_state(self, client):
        """Test that conflicts tell the caller what to re-read."""
        body = client.get("/raise/conflict").json()

        assert body["state"] == "ACTIVE"
        assert body["actual_state"] == "SUSPENDED"

    def test_unauthorized_carries_role(self, client):
        """Test that authorization failures name the role."""
        body = client.get("/raise/unauthorized").json()

        assert body["role"] == "CLIENT"
        assert body["action"] == "SUSPEND"

    def test_persistence_failure_hides_store_details(self, client):
        """Test that store error messages are not leaked."""
        body = client.get("/raise/store").json()

        assert "10.0.0.5" not in body["detail"]

    def test_correlation_id_is_echoed(self, client):
        """Test that a caller-supplied correlation id is kept."""
        response = client.get("/raise/missing", headers={CORRELATION_HEADER: "corr-123"})

        assert response.json()["correlation_id"] == "corr-123"
        assert response.headers[CORRELATION_HEADER] == "corr-123"

    def test_unexpected_error_is_500(self, client):
        """Test that unknown exceptions become a generic 500."""
        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["detail"] == "An unexpected error occurred"
