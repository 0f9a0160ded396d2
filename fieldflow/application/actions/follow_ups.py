"""create_task and create_reminder handlers (rows in automation_follow_ups)."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from fieldflow.application.actions.configs import CreateReminderConfig, CreateTaskConfig
from fieldflow.application.actions.registry import ActionContext, ActionHandler
from fieldflow.application.dtos.automation import FollowUpCreate
from fieldflow.shared.enums import ActionType, FollowUpKind
from fieldflow.shared.utils.datetime import ensure_utc, utc_now

if TYPE_CHECKING:
    from fieldflow.application.interfaces.repositories import IAutomationStore


class CreateTaskHandler(ActionHandler):
    action_type = ActionType.CREATE_TASK.value
    config_model = CreateTaskConfig

    def __init__(self, store: IAutomationStore) -> None:
        self.store = store

    async def execute(self, config: CreateTaskConfig, context: ActionContext) -> dict[str, Any]:
        due_at = utc_now() + timedelta(days=config.due_in_days)
        task = await self.store.create_follow_up(
            FollowUpCreate(
                kind=FollowUpKind.TASK.value,
                title=config.title,
                description=config.description,
                due_at=due_at,
                assigned_to=config.assign_to,
                priority=config.priority,
                workflow_id=context.workflow_id,
                execution_id=context.execution_id,
                entity_type=context.entity_type,
                entity_id=context.entity_id,
            )
        )
        return {
            "task_id": task.id,
            "title": task.title,
            "due_at": task.due_at.isoformat(),
            "assigned_to": task.assigned_to,
            "priority": task.priority,
        }


class CreateReminderHandler(ActionHandler):
    action_type = ActionType.CREATE_REMINDER.value
    config_model = CreateReminderConfig

    def __init__(self, store: IAutomationStore) -> None:
        self.store = store

    async def execute(
        self, config: CreateReminderConfig, context: ActionContext
    ) -> dict[str, Any]:
        # remind_at wins over remind_in_hours, which wins over remind_in_days.
        if config.remind_at is not None:
            remind_at = ensure_utc(config.remind_at)
        elif config.remind_in_hours:
            remind_at = utc_now() + timedelta(hours=config.remind_in_hours)
        else:
            remind_at = utc_now() + timedelta(days=config.remind_in_days)
        reminder = await self.store.create_follow_up(
            FollowUpCreate(
                kind=FollowUpKind.REMINDER.value,
                title=config.title,
                due_at=remind_at,
                workflow_id=context.workflow_id,
                execution_id=context.execution_id,
                entity_type=context.entity_type,
                entity_id=context.entity_id,
            )
        )
        return {
            "reminder_id": reminder.id,
            "title": reminder.title,
            "remind_at": reminder.due_at.isoformat(),
        }
