"""add_automation_tables

Revision ID: 3f8a1c2d9e4b
Revises:
Create Date: 2026-10-19 09:12:44.318207

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f8a1c2d9e4b"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("now()"),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "automation_workflows",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_template", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("template_category", sa.String(length=100), nullable=True),
        sa.Column(
            "max_executions_per_day", sa.Integer(), server_default=sa.text("100"), nullable=False
        ),
        sa.Column("cooldown_minutes", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_workflows_deleted_at", "automation_workflows", ["deleted_at"]
    )
    op.create_index(
        "ix_automation_workflows_active",
        "automation_workflows",
        ["is_active"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "automation_triggers",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("trigger_type", sa.String(length=100), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.Column("trigger_order", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflows.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_triggers_workflow_id", "automation_triggers", ["workflow_id"]
    )
    op.create_index(
        "ix_automation_triggers_trigger_type", "automation_triggers", ["trigger_type"]
    )

    op.create_table(
        "automation_actions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("action_type", sa.String(length=100), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("delay_minutes", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("action_order", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "continue_on_error", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflows.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("delay_minutes >= 0", name="automation_actions_delay_check"),
    )
    op.create_index(
        "ix_automation_actions_workflow_id", "automation_actions", ["workflow_id"]
    )
    op.create_index(
        "ix_automation_actions_action_type", "automation_actions", ["action_type"]
    )

    op.create_table(
        "automation_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=True),
        sa.Column("trigger_id", sa.String(), nullable=True),
        sa.Column("action_id", sa.String(), nullable=True),
        sa.Column("execution_id", sa.String(), nullable=False),
        sa.Column("trigger_type", sa.String(length=100), nullable=True),
        sa.Column("triggered_by_entity_type", sa.String(length=100), nullable=True),
        sa.Column("triggered_by_entity_id", sa.String(), nullable=True),
        sa.Column("action_type", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("input_data", sa.JSON(), nullable=True),
        sa.Column("output_data", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflows.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["trigger_id"], ["automation_triggers.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["action_id"], ["automation_actions.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'running', 'completed', 'failed', 'skipped', 'scheduled')",
            name="automation_logs_status_check",
        ),
    )
    op.create_index("ix_automation_logs_workflow_id", "automation_logs", ["workflow_id"])
    op.create_index("ix_automation_logs_execution_id", "automation_logs", ["execution_id"])
    op.create_index("ix_automation_logs_status", "automation_logs", ["status"])
    op.create_index(
        "ix_automation_logs_entity",
        "automation_logs",
        ["triggered_by_entity_type", "triggered_by_entity_id"],
    )
    op.create_index(
        "ix_automation_logs_workflow_started",
        "automation_logs",
        ["workflow_id", "started_at"],
    )

    op.create_table(
        "automation_scheduled_jobs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("trigger_id", sa.String(), nullable=True),
        sa.Column("next_run_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cron_expression", sa.String(length=100), nullable=True),
        sa.Column("timezone", sa.String(length=100), server_default="UTC", nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflows.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["trigger_id"], ["automation_triggers.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_scheduled_jobs_workflow_id",
        "automation_scheduled_jobs",
        ["workflow_id"],
    )
    op.create_index(
        "ix_automation_scheduled_jobs_due",
        "automation_scheduled_jobs",
        ["next_run_at"],
        postgresql_where=sa.text("is_active = true"),
    )

    op.create_table(
        "automation_follow_ups",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assigned_to", sa.String(), nullable=True),
        sa.Column("priority", sa.String(length=20), server_default="normal", nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=True),
        sa.Column("execution_id", sa.String(), nullable=True),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflows.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "kind IN ('task', 'reminder')", name="automation_follow_ups_kind_check"
        ),
    )
    op.create_index(
        "ix_automation_follow_ups_workflow_id", "automation_follow_ups", ["workflow_id"]
    )
    op.create_index(
        "ix_automation_follow_ups_entity",
        "automation_follow_ups",
        ["entity_type", "entity_id"],
    )

    op.create_table(
        "job_state_transitions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("from_state", sa.String(length=50), nullable=True),
        sa.Column("to_state", sa.String(length=50), nullable=False),
        sa.Column("changed_by", sa.String(), nullable=True),
        sa.Column("changed_by_role", sa.String(length=50), nullable=True),
        sa.Column("change_source", sa.String(length=20), server_default="manual", nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_job_state_transitions_job_created",
        "job_state_transitions",
        ["job_id", "created_at"],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_job_state_transitions_job_created", table_name="job_state_transitions")
    op.drop_table("job_state_transitions")
    op.drop_index("ix_automation_follow_ups_entity", table_name="automation_follow_ups")
    op.drop_index("ix_automation_follow_ups_workflow_id", table_name="automation_follow_ups")
    op.drop_table("automation_follow_ups")
    op.drop_index("ix_automation_scheduled_jobs_due", table_name="automation_scheduled_jobs")
    op.drop_index(
        "ix_automation_scheduled_jobs_workflow_id", table_name="automation_scheduled_jobs"
    )
    op.drop_table("automation_scheduled_jobs")
    for index in (
        "ix_automation_logs_workflow_started",
        "ix_automation_logs_entity",
        "ix_automation_logs_status",
        "ix_automation_logs_execution_id",
        "ix_automation_logs_workflow_id",
    ):
        op.drop_index(index, table_name="automation_logs")
    op.drop_table("automation_logs")
    op.drop_index("ix_automation_actions_action_type", table_name="automation_actions")
    op.drop_index("ix_automation_actions_workflow_id", table_name="automation_actions")
    op.drop_table("automation_actions")
    op.drop_index("ix_automation_triggers_trigger_type", table_name="automation_triggers")
    op.drop_index("ix_automation_triggers_workflow_id", table_name="automation_triggers")
    op.drop_table("automation_triggers")
    op.drop_index("ix_automation_workflows_active", table_name="automation_workflows")
    op.drop_index("ix_automation_workflows_deleted_at", table_name="automation_workflows")
    op.drop_table("automation_workflows")
