"""Unit tests for ScheduledEvent, EventCancellation and LifecycleTask."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from src.domain.entities.lifecycle_task import LifecycleTask, TaskStatus
from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
from src.domain.entities.service_instance import LifecycleAction, LifecycleState, Priority


def _event(**overrides) -> ScheduledEvent:
    fields = {
        "service_instance_id": uuid4(),
        "action": LifecycleAction.RENEW,
        "target_state": LifecycleState.ACTIVE,
        "created_from_state": LifecycleState.ACTIVE,
    }
    fields.update(overrides)
    return ScheduledEvent(**fields)


class TestScheduledEvent:
    """Test cases for ScheduledEvent entity."""

    def test_new_event_is_pending(self):
        """Test the defaults of a freshly scheduled event."""
        event = _event()

        assert event.is_completed is False
        assert event.completed_time is None
        assert event.history_entry_id is None
        assert event.priority == Priority.MEDIUM
        assert event.notified_users == []

    def test_completed_event_requires_completed_time(self):
        """Test that is_completed without completed_time is rejected."""
        with pytest.raises(ValueError, match="completed_time is required"):
            _event(is_completed=True)

    def test_pending_event_rejects_completed_time(self):
        """Test that a pending event cannot carry a completed_time."""
        with pytest.raises(ValueError, match="completed_time must be empty"):
            _event(completed_time=datetime.now(timezone.utc))

    def test_notified_users_default_not_shared(self):
        """Test that each event gets its own notified_users list."""
        first = _event()
        second = _event()
        first.notified_users.append("ops-1")

        assert second.notified_users == []


class TestEventCancellation:
    """Test cases for EventCancellation entity."""

    def test_creation(self):
        """Test that a cancellation keeps the reason."""
        cancellation = EventCancellation(
            event_id=uuid4(),
            service_instance_id=uuid4(),
            action=LifecycleAction.SUSPEND,
            cancelled_by="admin-1",
            reason="client paid",
        )

        assert cancellation.reason == "client paid"
        assert cancellation.cancelled_at.tzinfo is not None


class TestLifecycleTask:
    """Test cases for LifecycleTask entity."""

    def test_new_task_is_open(self):
        """Test that a new task is PENDING and open."""
        task = LifecycleTask(event_id=uuid4(), title="Collect signed renewal")

        assert task.status == TaskStatus.PENDING
        assert task.is_open is True

    @pytest.mark.parametrize("title", ["", "   "])
    def test_blank_title_raises(self, title):
        """Test that blank titles are rejected."""
        with pytest.raises(ValueError, match="title cannot be empty"):
            LifecycleTask(event_id=uuid4(), title=title)

    def test_completed_task_requires_completed_by(self):
        """Test that a COMPLETED task must name who completed it."""
        with pytest.raises(ValueError, match="completed_by is required"):
            LifecycleTask(event_id=uuid4(), title="Call client", status=TaskStatus.COMPLETED)

    def test_completed_task_is_not_open(self):
        """Test that is_open is False once completed."""
        task = LifecycleTask(
            event_id=uuid4(),
            title="Call client",
            status=TaskStatus.COMPLETED,
            completed_by="staff-1",
        )

        assert task.is_open is False
