"""Workflow definitions (with triggers and actions) repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldflow.domain.entities.workflow import Action, Trigger, WorkflowDefinition
from fieldflow.infrastructure.persistence.models.automation import (
    AutomationAction,
    AutomationTrigger,
    AutomationWorkflow,
)
from fieldflow.shared.enums import SCHEDULE_TRIGGER_TYPE


def _to_trigger(t: AutomationTrigger) -> Trigger:
    return Trigger(
        id=t.id,
        workflow_id=t.workflow_id,
        trigger_type=t.trigger_type,
        config=dict(t.config or {}),
        conditions=list(t.conditions or []),
        order=t.trigger_order,
    )


def _to_action(a: AutomationAction) -> Action:
    return Action(
        id=a.id,
        workflow_id=a.workflow_id,
        action_type=a.action_type,
        config=dict(a.config or {}),
        delay_minutes=a.delay_minutes,
        order=a.action_order,
        continue_on_error=a.continue_on_error,
    )


def to_definition(w: AutomationWorkflow) -> WorkflowDefinition:
    """Map AutomationWorkflow ORM (triggers and actions loaded) to the domain entity."""
    return WorkflowDefinition(
        id=w.id,
        name=w.name,
        description=w.description,
        is_active=w.is_active,
        is_template=w.is_template,
        template_category=w.template_category,
        max_executions_per_day=w.max_executions_per_day,
        cooldown_minutes=w.cooldown_minutes,
        deleted_at=w.deleted_at,
        triggers=[_to_trigger(t) for t in w.triggers],
        actions=[_to_action(a) for a in w.actions],
    )


class WorkflowRepository:
    """Workflow repository. Triggers and actions are selectin-loaded with each workflow."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_active(self, workflow_id: str) -> WorkflowDefinition | None:
        result = await self.db.execute(
            select(AutomationWorkflow).where(
                AutomationWorkflow.id == workflow_id,
                AutomationWorkflow.is_active.is_(True),
                AutomationWorkflow.deleted_at.is_(None),
            )
        )
        workflow = result.scalar_one_or_none()
        return to_definition(workflow) if workflow is not None else None

    async def list_for_trigger(self, trigger_type: str) -> list[WorkflowDefinition]:
        has_trigger = (
            select(AutomationTrigger.id)
            .where(
                AutomationTrigger.workflow_id == AutomationWorkflow.id,
                AutomationTrigger.trigger_type == trigger_type,
            )
            .exists()
        )
        result = await self.db.execute(
            select(AutomationWorkflow)
            .where(
                AutomationWorkflow.is_active.is_(True),
                AutomationWorkflow.deleted_at.is_(None),
                has_trigger,
            )
            .order_by(AutomationWorkflow.name.asc())
        )
        return [to_definition(w) for w in result.scalars().all()]

    async def list_schedule_triggers(self) -> list[Trigger]:
        result = await self.db.execute(
            select(AutomationTrigger)
            .join(AutomationWorkflow, AutomationWorkflow.id == AutomationTrigger.workflow_id)
            .where(
                AutomationTrigger.trigger_type == SCHEDULE_TRIGGER_TYPE,
                AutomationWorkflow.is_active.is_(True),
                AutomationWorkflow.deleted_at.is_(None),
            )
            .order_by(AutomationTrigger.workflow_id, AutomationTrigger.trigger_order)
        )
        return [_to_trigger(t) for t in result.scalars().all()]

    async def get_by_name(self, name: str) -> AutomationWorkflow | None:
        result = await self.db.execute(
            select(AutomationWorkflow).where(
                AutomationWorkflow.name == name,
                AutomationWorkflow.deleted_at.is_(None),
            )
        )
        return result.scalars().first()

    async def create_workflow(
        self,
        name: str,
        *,
        triggers: list[dict[str, Any]],
        actions: list[dict[str, Any]],
        description: str | None = None,
        is_active: bool = True,
        is_template: bool = False,
        template_category: str | None = None,
        max_executions_per_day: int = 100,
        cooldown_minutes: int = 0,
        created_by: str | None = None,
    ) -> WorkflowDefinition:
        """Create a workflow with its triggers and actions (list order becomes execution order)."""
        workflow = AutomationWorkflow(
            name=name,
            description=description,
            is_active=is_active,
            is_template=is_template,
            template_category=template_category,
            max_executions_per_day=max_executions_per_day,
            cooldown_minutes=cooldown_minutes,
            created_by=created_by,
            triggers=[
                AutomationTrigger(
                    trigger_type=t["trigger_type"],
                    config=t.get("config") or {},
                    conditions=t.get("conditions") or [],
                    trigger_order=t.get("order", i),
                )
                for i, t in enumerate(triggers)
            ],
            actions=[
                AutomationAction(
                    action_type=a["action_type"],
                    config=a.get("config") or {},
                    delay_minutes=a.get("delay_minutes", 0),
                    action_order=a.get("order", i),
                    continue_on_error=a.get("continue_on_error", True),
                )
                for i, a in enumerate(actions)
            ],
        )
        self.db.add(workflow)
        await self.db.flush()
        await self.db.refresh(workflow)
        await self.db.refresh(workflow, ["triggers", "actions"])
        return to_definition(workflow)
