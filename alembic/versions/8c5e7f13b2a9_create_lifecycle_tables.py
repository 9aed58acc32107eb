"""create_lifecycle_tables

Revision ID: 8c5e7f13b2a9
Revises: 3a91c2e0d4b7
Create Date: 2026-10-12 10:21:47.093184

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8c5e7f13b2a9"
down_revision: str | Sequence[str] | None = "3a91c2e0d4b7"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

STATES = (
    "'REQUESTED', 'PENDING_INFO', 'REJECTED', 'ONBOARDING', 'ACTIVE', "
    "'MAINTENANCE', 'RENEWAL_DUE', 'SUSPENDED', 'TERMINATED', 'ARCHIVED'"
)
ACTIONS = (
    "'APPROVE', 'REJECT', 'REQUEST_INFO', 'PROVIDE_INFO', 'ACTIVATE', "
    "'START_MAINTENANCE', 'COMPLETE_MAINTENANCE', 'NOTIFY_RENEWAL', "
    "'REQUEST_RENEWAL', 'RENEW', 'SUSPEND', 'REINSTATE', 'TERMINATE', 'ARCHIVE'"
)
ROLES = "'ADMIN', 'STAFF', 'CLIENT', 'OBSERVER', 'SYSTEM'"
PRIORITIES = "'LOW', 'MEDIUM', 'HIGH', 'URGENT'"
TASK_STATUSES = "'PENDING', 'IN_PROGRESS', 'BLOCKED', 'COMPLETED'"


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    """Create service instance, history, event, cancellation and task tables."""
    op.create_table(
        "service_instances",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("client_id", sa.String(255), nullable=False),
        sa.Column("service_id", sa.String(255), nullable=False),
        sa.Column("current_state", sa.String(32), nullable=False),
        # Bumped by every state change (optimistic concurrency)
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(255), nullable=False, server_default=""),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(f"current_state IN ({STATES})", name="ck_instance_state"),
        sa.CheckConstraint("version >= 0", name="ck_instance_version"),
    )
    op.create_index("ix_service_instances_client_id", "service_instances", ["client_id"])
    op.create_index("ix_service_instances_service_id", "service_instances", ["service_id"])

    # Append-only ledger
    op.create_table(
        "lifecycle_history",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "service_instance_id",
            sa.Uuid,
            sa.ForeignKey("service_instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("previous_state", sa.String(32), nullable=True),
        sa.Column("resulting_state", sa.String(32), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("performed_by", sa.String(255), nullable=False),
        sa.Column("performed_by_role", sa.String(16), nullable=False),
        sa.Column("comments", sa.Text, nullable=True),
        sa.Column("instance_version", sa.Integer, nullable=False, server_default="0"),
        _timestamp("timestamp"),
        sa.CheckConstraint(f"resulting_state IN ({STATES})", name="ck_history_state"),
        sa.CheckConstraint(f"action IN ({ACTIONS})", name="ck_history_action"),
        sa.CheckConstraint(f"performed_by_role IN ({ROLES})", name="ck_history_role"),
    )
    op.create_index(
        "ix_history_instance_timestamp",
        "lifecycle_history",
        ["service_instance_id", "timestamp"],
    )

    op.create_table(
        "scheduled_events",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "service_instance_id",
            sa.Uuid,
            sa.ForeignKey("service_instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("target_state", sa.String(32), nullable=False),
        sa.Column("created_from_state", sa.String(32), nullable=False),
        _timestamp("scheduled_time", nullable=True),
        sa.Column("assigned_to", sa.String(255), nullable=True),
        sa.Column("priority", sa.String(16), nullable=False, server_default="MEDIUM"),
        sa.Column("notified_users", sa.JSON, nullable=False),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("is_completed", sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamp("completed_time", nullable=True),
        sa.Column("completed_by", sa.String(255), nullable=True),
        sa.Column(
            "history_entry_id",
            sa.Uuid,
            sa.ForeignKey("lifecycle_history.id"),
            nullable=True,
        ),
        _timestamp("created_at"),
        sa.CheckConstraint(f"action IN ({ACTIONS})", name="ck_event_action"),
        sa.CheckConstraint(f"priority IN ({PRIORITIES})", name="ck_event_priority"),
        sa.CheckConstraint(
            "(is_completed AND completed_time IS NOT NULL) OR "
            "(NOT is_completed AND completed_time IS NULL)",
            name="ck_event_completion",
        ),
    )
    op.create_index(
        "ix_events_instance_pending",
        "scheduled_events",
        ["service_instance_id", "is_completed"],
    )

    op.create_table(
        "event_cancellations",
        sa.Column("id", sa.Uuid, primary_key=True),
        # Not a foreign key: the event row is deleted on cancellation
        sa.Column("event_id", sa.Uuid, nullable=False),
        sa.Column(
            "service_instance_id",
            sa.Uuid,
            sa.ForeignKey("service_instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("cancelled_by", sa.String(255), nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        _timestamp("cancelled_at"),
    )
    op.create_index(
        "ix_event_cancellations_service_instance_id",
        "event_cancellations",
        ["service_instance_id"],
    )

    op.create_table(
        "lifecycle_tasks",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "event_id",
            sa.Uuid,
            sa.ForeignKey("scheduled_events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("assigned_to", sa.String(255), nullable=True),
        _timestamp("due_date", nullable=True),
        sa.Column("priority", sa.String(16), nullable=False, server_default="MEDIUM"),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("completed_by", sa.String(255), nullable=True),
        _timestamp("completed_at", nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint(f"status IN ({TASK_STATUSES})", name="ck_task_status"),
        sa.CheckConstraint(f"priority IN ({PRIORITIES})", name="ck_task_priority"),
    )
    op.create_index("ix_lifecycle_tasks_event_id", "lifecycle_tasks", ["event_id"])


def downgrade() -> None:
    """Drop lifecycle tables."""
    op.drop_index("ix_lifecycle_tasks_event_id", table_name="lifecycle_tasks")
    op.drop_table("lifecycle_tasks")
    op.drop_index(
        "ix_event_cancellations_service_instance_id", table_name="event_cancellations"
    )
    op.drop_table("event_cancellations")
    op.drop_index("ix_events_instance_pending", table_name="scheduled_events")
    op.drop_table("scheduled_events")
    op.drop_index("ix_history_instance_timestamp", table_name="lifecycle_history")
    op.drop_table("lifecycle_history")
    op.drop_index("ix_service_instances_service_id", table_name="service_instances")
    op.drop_index("ix_service_instances_client_id", table_name="service_instances")
    op.drop_table("service_instances")
