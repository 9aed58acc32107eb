"""Integration tests for Prometheus metrics.

Tests that metrics are correctly recorded and exposed via /metrics endpoint.
"""

import pytest
from fastapi.testclient import TestClient

from src.infrastructure.api.main import create_app
from src.infrastructure.observability import metrics


@pytest.fixture
def app():
    """Create FastAPI app for testing."""
    return create_app()


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


def _content() -> str:
    content, _ = metrics.get_metrics_content()
    return content.decode("utf-8")


class TestMetricsEndpoint:
    """Tests for /metrics endpoint."""

    def test_metrics_endpoint_returns_prometheus_format(self, client):
        """Test that /metrics returns Prometheus exposition format."""
        client.get("/api/v1/health")
        response = client.get("/api/v1/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "lifecycle_engine_http_requests_total" in response.text
        assert "lifecycle_engine_http_request_duration_seconds" in response.text

    def test_metrics_recorded_for_requests(self, client):
        """Test that HTTP requests are recorded with route labels."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

        content = client.get("/api/v1/metrics").text

        assert 'endpoint="/api/v1/health"' in content
        assert 'method="GET"' in content
        assert 'status_code="200"' in content


class TestMetricsRecording:
    """Tests for metric recording functions."""

    def test_record_http_request(self):
        """Test HTTP request metric recording."""
        metrics.record_http_request(
            method="POST",
            endpoint="/api/v1/instances/{id}/transitions",
            status_code=409,
            duration=0.012,
        )

        assert 'endpoint="/api/v1/instances/{id}/transitions"' in _content()

    def test_record_lifecycle_transition(self):
        """Test transition outcome recording."""
        metrics.record_lifecycle_transition(action="SUSPEND", outcome="committed")
        metrics.record_lifecycle_transition(action="RENEW", outcome="conflict")

        content = _content()
        assert "lifecycle_engine_transitions_total" in content
        assert 'action="SUSPEND",outcome="committed"' in content
        assert 'action="RENEW",outcome="conflict"' in content

    def test_record_instance_provisioned(self):
        """Test provisioning counter."""
        metrics.record_instance_provisioned("REQUESTED")

        assert 'lifecycle_engine_instances_provisioned_total{initial_state="REQUESTED"}' in _content()

    def test_event_and_task_operations(self):
        """Test event and task operation counters."""
        metrics.record_scheduled_event_operation("cancelled")
        metrics.record_task_operation("completed")

        content = _content()
        assert 'lifecycle_engine_scheduled_event_operations_total{operation="cancelled"}' in content
        assert 'lifecycle_engine_task_operations_total{operation="completed"}' in content

    def test_db_pool_gauges(self):
        """Test pool gauges."""
        metrics.update_db_pool_metrics(active=3, pool_size=20)

        content = _content()
        assert "lifecycle_engine_db_connections_active 3.0" in content
        assert "lifecycle_engine_db_pool_size 20.0" in content
