"""Integration tests for the SQLAlchemy lifecycle repositories.

Runs against an in-memory SQLite database created from the ORM metadata.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities.lifecycle_task import LifecycleTask, TaskStatus
from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleAction,
    LifecycleState,
    Priority,
    Role,
    ServiceInstance,
)
from src.infrastructure.database.repositories import (
    HistoryRepository,
    LifecycleTaskRepository,
    ScheduledEventRepository,
    ServiceInstanceRepository,
)

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
async def instance(db_session: AsyncSession) -> ServiceInstance:
    """Persist an ACTIVE service instance."""
    created = await ServiceInstanceRepository(db_session).create(
        ServiceInstance(
            client_id="client-42",
            service_id="managed-backup",
            current_state=LifecycleState.ACTIVE,
            created_by="admin-1",
        )
    )
    await db_session.commit()
    return created


def _event(instance_id, action=LifecycleAction.RENEW, **overrides) -> ScheduledEvent:
    fields = {
        "service_instance_id": instance_id,
        "action": action,
        "target_state": LifecycleState.ACTIVE,
        "created_from_state": LifecycleState.ACTIVE,
    }
    fields.update(overrides)
    return ScheduledEvent(**fields)


@pytest.mark.integration
class TestServiceInstanceRepository:
    """Integration tests for ServiceInstanceRepository."""

    async def test_create_and_get(self, db_session: AsyncSession, instance):
        """Test round trip of a service instance with aware timestamps."""
        fetched = await ServiceInstanceRepository(db_session).get_by_id(instance.id)

        assert fetched.id == instance.id
        assert fetched.client_id == "client-42"
        assert fetched.version == 0
        assert fetched.current_state == LifecycleState.ACTIVE
        assert fetched.created_at.tzinfo is not None

    async def test_get_missing_returns_none(self, db_session: AsyncSession):
        """Test that unknown ids return None."""
        assert await ServiceInstanceRepository(db_session).get_by_id(uuid4()) is None

    async def test_compare_and_set_state(self, db_session: AsyncSession, instance):
        """Test that the conditional update bumps the version once."""
        repository = ServiceInstanceRepository(db_session)

        updated = await repository.compare_and_set_state(
            instance.id, LifecycleState.ACTIVE, LifecycleState.SUSPENDED
        )
        stale = await repository.compare_and_set_state(
            instance.id, LifecycleState.ACTIVE, LifecycleState.TERMINATED
        )
        await db_session.commit()

        assert updated.current_state == LifecycleState.SUSPENDED
        assert updated.version == 1
        assert stale is None
        assert (await repository.get_by_id(instance.id)).current_state == LifecycleState.SUSPENDED

    async def test_compare_and_set_missing_instance(self, db_session: AsyncSession):
        """Test that a missing row is reported like a lost race."""
        result = await ServiceInstanceRepository(db_session).compare_and_set_state(
            uuid4(), LifecycleState.ACTIVE, LifecycleState.SUSPENDED
        )

        assert result is None


@pytest.mark.integration
class TestHistoryRepository:
    """Integration tests for HistoryRepository."""

    async def test_list_newest_first_with_limit(self, db_session: AsyncSession, instance):
        """Test ordering by timestamp descending and the limit."""
        repository = HistoryRepository(db_session)
        for offset, action in enumerate(
            [LifecycleAction.SUSPEND, LifecycleAction.REINSTATE, LifecycleAction.RENEW]
        ):
            await repository.append(
                HistoryEntry(
                    service_instance_id=instance.id,
                    resulting_state=LifecycleState.ACTIVE,
                    action=action,
                    performed_by="admin-1",
                    performed_by_role=Role.ADMIN,
                    timestamp=T0 + timedelta(minutes=offset),
                )
            )
        await db_session.commit()

        entries = await repository.list_for_instance(instance.id)
        limited = await repository.list_for_instance(instance.id, limit=2)

        assert [e.action for e in entries] == [
            LifecycleAction.RENEW,
            LifecycleAction.REINSTATE,
            LifecycleAction.SUSPEND,
        ]
        assert [e.action for e in limited] == [LifecycleAction.RENEW, LifecycleAction.REINSTATE]
        assert entries[0].timestamp == T0 + timedelta(minutes=2)
        assert entries[0].performed_by_role == Role.ADMIN

    async def test_same_timestamp_orders_by_instance_version(
        self, db_session: AsyncSession, instance
    ):
        """Test that entries sharing a timestamp come back highest version first."""
        repository = HistoryRepository(db_session)
        for version, state in [
            (2, LifecycleState.ACTIVE),
            (3, LifecycleState.SUSPENDED),
            (1, LifecycleState.ONBOARDING),
        ]:
            await repository.append(
                HistoryEntry(
                    service_instance_id=instance.id,
                    resulting_state=state,
                    action=LifecycleAction.APPROVE,
                    performed_by="admin-1",
                    performed_by_role=Role.ADMIN,
                    instance_version=version,
                    timestamp=T0,
                )
            )
        await db_session.commit()

        entries = await repository.list_for_instance(instance.id)

        assert [e.instance_version for e in entries] == [3, 2, 1]
        assert entries[0].resulting_state == LifecycleState.SUSPENDED


@pytest.mark.integration
class TestScheduledEventRepository:
    """Integration tests for ScheduledEventRepository."""

    async def test_pending_order_puts_unscheduled_last(self, db_session: AsyncSession, instance):
        """Test ordering by scheduled_time ascending with NULLs last."""
        repository = ScheduledEventRepository(db_session)
        unscheduled = await repository.create(
            _event(instance.id, LifecycleAction.TERMINATE, created_at=T0)
        )
        later = await repository.create(
            _event(instance.id, scheduled_time=T0 + timedelta(days=30))
        )
        sooner = await repository.create(
            _event(
                instance.id,
                LifecycleAction.NOTIFY_RENEWAL,
                scheduled_time=T0 + timedelta(days=1),
                priority=Priority.URGENT,
                notified_users=["client-user", "ops"],
            )
        )
        await db_session.commit()

        pending = await repository.list_pending_for_instance(instance.id)

        assert [e.id for e in pending] == [sooner.id, later.id, unscheduled.id]
        assert pending[0].notified_users == ["client-user", "ops"]
        assert pending[0].priority == Priority.URGENT
        assert pending[0].scheduled_time == T0 + timedelta(days=1)

    async def test_mark_completed_is_conditional(self, db_session: AsyncSession, instance):
        """Test that an event can only be completed once."""
        repository = ScheduledEventRepository(db_session)
        history = HistoryRepository(db_session)
        event = await repository.create(_event(instance.id))
        entry = await history.append(
            HistoryEntry(
                service_instance_id=instance.id,
                resulting_state=LifecycleState.ACTIVE,
                action=LifecycleAction.RENEW,
                performed_by="admin-1",
                performed_by_role=Role.ADMIN,
            )
        )

        completed = await repository.mark_completed(
            event.id, LifecycleState.ACTIVE, "admin-1", entry.id, T0
        )
        again = await repository.mark_completed(
            event.id, LifecycleState.ACTIVE, "admin-1", entry.id, T0
        )
        await db_session.commit()

        assert completed.is_completed is True
        assert completed.history_entry_id == entry.id
        assert completed.completed_time == T0
        assert again is None
        assert await repository.list_pending_for_instance(instance.id) == []
        assert await repository.delete(event.id) is False

    async def test_delete_cascades_to_tasks(self, db_session: AsyncSession, instance):
        """Test that deleting a pending event removes its tasks."""
        repository = ScheduledEventRepository(db_session)
        tasks = LifecycleTaskRepository(db_session)
        event = await repository.create(_event(instance.id))
        task = await tasks.create(LifecycleTask(event_id=event.id, title="Prepare invoice"))
        await db_session.commit()

        assert await repository.delete(event.id) is True
        await db_session.commit()

        assert await repository.get_by_id(event.id) is None
        assert await tasks.get_by_id(task.id) is None

    async def test_cancellation_log(self, db_session: AsyncSession, instance):
        """Test that cancellations survive the deleted event, newest first."""
        repository = ScheduledEventRepository(db_session)
        first = await repository.record_cancellation(
            EventCancellation(
                event_id=uuid4(),
                service_instance_id=instance.id,
                action=LifecycleAction.SUSPEND,
                reason="paid",
                cancelled_at=T0,
            )
        )
        second = await repository.record_cancellation(
            EventCancellation(
                event_id=uuid4(),
                service_instance_id=instance.id,
                action=LifecycleAction.RENEW,
                cancelled_at=T0 + timedelta(hours=1),
            )
        )
        await db_session.commit()

        log = await repository.list_cancellations_for_instance(instance.id)

        assert [c.id for c in log] == [second.id, first.id]
        assert log[1].reason == "paid"


@pytest.mark.integration
class TestLifecycleTaskRepository:
    """Integration tests for LifecycleTaskRepository."""

    async def test_open_tasks_by_due_date(self, db_session: AsyncSession, instance):
        """Test that open tasks come back by due date and completed ones are skipped."""
        events = ScheduledEventRepository(db_session)
        repository = LifecycleTaskRepository(db_session)
        event = await events.create(_event(instance.id))
        undated = await repository.create(
            LifecycleTask(event_id=event.id, title="Undated", created_at=T0)
        )
        due_later = await repository.create(
            LifecycleTask(event_id=event.id, title="Later", due_date=T0 + timedelta(days=5))
        )
        due_soon = await repository.create(
            LifecycleTask(event_id=event.id, title="Soon", due_date=T0 + timedelta(days=1))
        )
        await repository.create(
            LifecycleTask(
                event_id=event.id,
                title="Done",
                status=TaskStatus.COMPLETED,
                completed_by="staff-7",
                completed_at=T0,
            )
        )
        await db_session.commit()

        open_tasks = await repository.list_open_for_instance(instance.id)

        assert [t.id for t in open_tasks] == [due_soon.id, due_later.id, undated.id]
        assert len(await repository.list_for_event(event.id)) == 4

    async def test_update_status(self, db_session: AsyncSession, instance):
        """Test writing back a completed task."""
        events = ScheduledEventRepository(db_session)
        repository = LifecycleTaskRepository(db_session)
        event = await events.create(_event(instance.id))
        task = await repository.create(LifecycleTask(event_id=event.id, title="Call client"))

        task.status = TaskStatus.COMPLETED
        task.completed_by = "staff-7"
        task.completed_at = T0
        updated = await repository.update(task)
        await db_session.commit()

        assert updated.status == TaskStatus.COMPLETED
        assert updated.completed_at == T0

    async def test_update_missing_task_raises(self, db_session: AsyncSession):
        """Test that updating an unknown task raises ValueError."""
        with pytest.raises(ValueError):
            await LifecycleTaskRepository(db_session).update(
                LifecycleTask(event_id=uuid4(), title="Ghost")
            )
