"""SQLAlchemy models for the service lifecycle engine.

These models map domain entities to relational tables using SQLAlchemy ORM.
Column types are portable (PostgreSQL in production, SQLite in tests); all
tables use UUID primary keys and timezone-aware timestamps.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.domain.entities.lifecycle_task import TaskStatus
from src.domain.entities.service_instance import (
    LifecycleAction,
    LifecycleState,
    Priority,
    Role,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC.

    SQLite drops tzinfo on the way in and out, so every timestamp is
    written and read through this.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _in(column: str, enum_cls) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all SQLAlchemy models with async support."""

    pass


class ServiceInstanceModel(Base):
    """SQLAlchemy model for the service_instances table.

    version is bumped by every state change and backs optimistic concurrency.
    """

    __tablename__ = "service_instances"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    client_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    service_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    current_state: Mapped[str] = mapped_column(String(32), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(_in("current_state", LifecycleState), name="ck_instance_state"),
        CheckConstraint("version >= 0", name="ck_instance_version"),
    )


class LifecycleHistoryModel(Base):
    """SQLAlchemy model for the lifecycle_history table.

    Append-only: rows are inserted by the lifecycle controller and never
    updated or deleted.
    """

    __tablename__ = "lifecycle_history"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    service_instance_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("service_instances.id", ondelete="CASCADE"),
        nullable=False,
    )

    previous_state: Mapped[str | None] = mapped_column(String(32), nullable=True)
    resulting_state: Mapped[str] = mapped_column(String(32), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)

    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    performed_by_role: Mapped[str] = mapped_column(String(16), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    instance_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(_in("resulting_state", LifecycleState), name="ck_history_state"),
        CheckConstraint(_in("action", LifecycleAction), name="ck_history_action"),
        CheckConstraint(_in("performed_by_role", Role), name="ck_history_role"),
        Index("ix_history_instance_timestamp", "service_instance_id", "timestamp"),
    )


class ScheduledEventModel(Base):
    """SQLAlchemy model for the scheduled_events table.

    Pending rows are hard-deleted on cancellation; completed rows are kept.
    """

    __tablename__ = "scheduled_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    service_instance_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("service_instances.id", ondelete="CASCADE"),
        nullable=False,
    )

    action: Mapped[str] = mapped_column(String(32), nullable=False)
    target_state: Mapped[str] = mapped_column(String(32), nullable=False)
    created_from_state: Mapped[str] = mapped_column(String(32), nullable=False)

    scheduled_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Priority.MEDIUM.value
    )
    notified_users: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Completion
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    history_entry_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("lifecycle_history.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(_in("action", LifecycleAction), name="ck_event_action"),
        CheckConstraint(_in("priority", Priority), name="ck_event_priority"),
        CheckConstraint(
            "(is_completed AND completed_time IS NOT NULL) OR "
            "(NOT is_completed AND completed_time IS NULL)",
            name="ck_event_completion",
        ),
        Index("ix_events_instance_pending", "service_instance_id", "is_completed"),
    )


class EventCancellationModel(Base):
    """SQLAlchemy model for the event_cancellations table.

    Outlives the cancelled event row, so event_id is not a foreign key.
    """

    __tablename__ = "event_cancellations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    service_instance_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("service_instances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(32), nullable=False)

    cancelled_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class LifecycleTaskModel(Base):
    """SQLAlchemy model for the lifecycle_tasks table."""

    __tablename__ = "lifecycle_tasks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    event_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("scheduled_events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Priority.MEDIUM.value
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TaskStatus.PENDING.value
    )

    completed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(_in("status", TaskStatus), name="ck_task_status"),
        CheckConstraint(_in("priority", Priority), name="ck_task_priority"),
    )


class ApiKeyModel(Base):
    """SQLAlchemy model for the api_keys table.

    Stores API keys for authenticating API clients as bcrypt hashes.
    """

    __tablename__ = "api_keys"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Client identifier reported as request.state.client_id
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    key_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Revoked keys stay in the table with is_active false
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
