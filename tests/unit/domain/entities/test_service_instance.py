"""Unit tests for ServiceInstance and HistoryEntry entities."""

import dataclasses
from datetime import datetime
from uuid import UUID, uuid4

import pytest

from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleAction,
    LifecycleState,
    Priority,
    Role,
    ServiceInstance,
)


class TestLifecycleVocabulary:
    """Test cases for the lifecycle enums."""

    def test_state_values(self):
        """Test that all ten lifecycle states exist."""
        assert {s.value for s in LifecycleState} == {
            "REQUESTED",
            "PENDING_INFO",
            "REJECTED",
            "ONBOARDING",
            "ACTIVE",
            "MAINTENANCE",
            "RENEWAL_DUE",
            "SUSPENDED",
            "TERMINATED",
            "ARCHIVED",
        }

    def test_enums_are_string_enums(self):
        """Test that vocabulary enums compare equal to their values."""
        assert isinstance(LifecycleState.ACTIVE, str)
        assert LifecycleAction.RENEW == "RENEW"
        assert Role.ADMIN == "ADMIN"
        assert Priority.URGENT == "URGENT"

    def test_unknown_role_is_rejected(self):
        """Test that an unknown role string is not a Role."""
        with pytest.raises(ValueError):
            Role("SUPERUSER")


class TestServiceInstance:
    """Test cases for ServiceInstance entity."""

    def test_creation_with_minimal_fields(self):
        """Test that a new instance starts REQUESTED at version 0."""
        instance = ServiceInstance(client_id="client-1", service_id="backup")

        assert instance.current_state == LifecycleState.REQUESTED
        assert instance.version == 0
        assert instance.created_by == ""
        assert isinstance(instance.id, UUID)
        assert isinstance(instance.created_at, datetime)
        assert instance.created_at.tzinfo is not None

    def test_empty_client_id_raises(self):
        """Test that empty client_id raises ValueError."""
        with pytest.raises(ValueError, match="client_id cannot be empty"):
            ServiceInstance(client_id="", service_id="backup")

    def test_empty_service_id_raises(self):
        """Test that empty service_id raises ValueError."""
        with pytest.raises(ValueError, match="service_id cannot be empty"):
            ServiceInstance(client_id="client-1", service_id="")

    def test_negative_version_raises(self):
        """Test that a negative version raises ValueError."""
        with pytest.raises(ValueError, match="version must be non-negative"):
            ServiceInstance(client_id="client-1", service_id="backup", version=-1)


class TestHistoryEntry:
    """Test cases for HistoryEntry entity."""

    def test_creation(self):
        """Test creating a history entry with its defaults."""
        instance_id = uuid4()
        entry = HistoryEntry(
            service_instance_id=instance_id,
            resulting_state=LifecycleState.ACTIVE,
            action=LifecycleAction.APPROVE,
            performed_by="staff-7",
            performed_by_role=Role.STAFF,
            previous_state=LifecycleState.ONBOARDING,
        )

        assert entry.service_instance_id == instance_id
        assert entry.comments is None
        assert entry.timestamp.tzinfo is not None

    def test_entry_is_immutable(self):
        """Test that history entries cannot be modified."""
        entry = HistoryEntry(
            service_instance_id=uuid4(),
            resulting_state=LifecycleState.ACTIVE,
            action=LifecycleAction.APPROVE,
            performed_by="staff-7",
            performed_by_role=Role.STAFF,
        )

        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.comments = "rewritten"

    def test_empty_performed_by_raises(self):
        """Test that a history entry needs an actor."""
        with pytest.raises(ValueError, match="performed_by cannot be empty"):
            HistoryEntry(
                service_instance_id=uuid4(),
                resulting_state=LifecycleState.ACTIVE,
                action=LifecycleAction.APPROVE,
                performed_by="",
                performed_by_role=Role.STAFF,
            )

    def test_negative_instance_version_raises(self):
        """Test that the recorded instance version cannot be negative."""
        with pytest.raises(ValueError, match="instance_version cannot be negative"):
            HistoryEntry(
                service_instance_id=uuid4(),
                resulting_state=LifecycleState.ACTIVE,
                action=LifecycleAction.APPROVE,
                performed_by="staff-7",
                performed_by_role=Role.STAFF,
                instance_version=-1,
            )
