"""Automation ORM models: workflows, triggers, actions, logs, scheduled jobs, follow-ups."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
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
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldflow.infrastructure.persistence.database import Base
from fieldflow.infrastructure.persistence.models.mixins import (
    AppendOnlyModel,
    AutomationModel,
    SoftDeleteMixin,
)
from fieldflow.shared.enums import ExecutionStatus, FollowUpKind


def _in_check(column: str, values: list[str]) -> str:
    return "{} IN ({})".format(
        column, ", ".join("'{}'".format(v.replace("'", "''")) for v in values)
    )


class AutomationWorkflow(AutomationModel, SoftDeleteMixin, Base):
    """Workflow definition. Table: automation_workflows."""

    __tablename__ = "automation_workflows"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    is_template: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    template_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    max_executions_per_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=100, server_default=sa.text("100")
    )
    cooldown_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    triggers: Mapped[list["AutomationTrigger"]] = relationship(
        back_populates="workflow",
        order_by="AutomationTrigger.trigger_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    actions: Mapped[list["AutomationAction"]] = relationship(
        back_populates="workflow",
        order_by="AutomationAction.action_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index(
            "ix_automation_workflows_active",
            "is_active",
            postgresql_where=sa.text("deleted_at IS NULL"),
        ),
    )


class AutomationTrigger(AutomationModel, Base):
    """When a workflow runs. Table: automation_triggers."""

    __tablename__ = "automation_triggers"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("automation_workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trigger_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    trigger_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )

    workflow: Mapped[AutomationWorkflow] = relationship(back_populates="triggers")


class AutomationAction(AutomationModel, Base):
    """What a workflow does. Table: automation_actions."""

    __tablename__ = "automation_actions"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("automation_workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    delay_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    action_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    continue_on_error: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )

    workflow: Mapped[AutomationWorkflow] = relationship(back_populates="actions")

    __table_args__ = (
        CheckConstraint("delay_minutes >= 0", name="automation_actions_delay_check"),
    )


class AutomationLog(AppendOnlyModel, Base):
    """Append-only execution audit row. Table: automation_logs."""

    __tablename__ = "automation_logs"

    workflow_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("automation_workflows.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    trigger_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("automation_triggers.id", ondelete="SET NULL"), nullable=True
    )
    action_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("automation_actions.id", ondelete="SET NULL"), nullable=True
    )
    execution_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    trigger_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    triggered_by_entity_type: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    triggered_by_entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
    action_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ExecutionStatus.PENDING.value,
        index=True,
    )
    input_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    output_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index(
            "ix_automation_logs_entity",
            "triggered_by_entity_type",
            "triggered_by_entity_id",
        ),
        Index("ix_automation_logs_workflow_started", "workflow_id", "started_at"),
        CheckConstraint(
            _in_check("status", ExecutionStatus.values()),
            name="automation_logs_status_check",
        ),
    )


class AutomationScheduledJob(AutomationModel, Base):
    """Cron (recurring) or one-shot delayed job. Table: automation_scheduled_jobs."""

    __tablename__ = "automation_scheduled_jobs"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("automation_workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trigger_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("automation_triggers.id", ondelete="CASCADE"), nullable=True
    )
    next_run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cron_expression: Mapped[str | None] = mapped_column(String(100), nullable=True)
    timezone: Mapped[str] = mapped_column(
        String(100), nullable=False, default="UTC", server_default="UTC"
    )
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )

    __table_args__ = (
        Index(
            "ix_automation_scheduled_jobs_due",
            "next_run_at",
            postgresql_where=sa.text("is_active = true"),
        ),
    )


class AutomationFollowUp(AppendOnlyModel, Base):
    """Task or reminder created by an action. Table: automation_follow_ups."""

    __tablename__ = "automation_follow_ups"

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default="normal", server_default="normal"
    )
    workflow_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("automation_workflows.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    execution_id: Mapped[str | None] = mapped_column(String, nullable=True)
    entity_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            _in_check("kind", FollowUpKind.values()),
            name="automation_follow_ups_kind_check",
        ),
        Index("ix_automation_follow_ups_entity", "entity_type", "entity_id"),
    )
