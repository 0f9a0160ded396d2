"""Workflow engine: match triggers, run action chains, write the execution log.

Every run writes append-only rows to automation_logs under one execution_id:
a run-level ``running`` row, one row per action attempt, then a run-level
``completed`` or ``failed`` row. A run whose triggers all fail their
conditions writes a single ``skipped`` row.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from fieldflow.application.actions.registry import ActionContext, ActionRegistry
from fieldflow.application.dtos.automation import (
    ActionResult,
    BusinessEvent,
    ExecutionLogCreate,
    WorkflowRunResult,
)
from fieldflow.application.services.condition_evaluator import evaluate_all
from fieldflow.application.services.event_bus import entity_type_for
from fieldflow.domain.entities.workflow import Action, Condition, Trigger, WorkflowDefinition
from fieldflow.domain.exceptions import (
    ActionExecutionException,
    ActionTimeoutException,
    WorkflowDefinitionException,
    WorkflowNotFoundException,
)
from fieldflow.shared.enums import ExecutionStatus
from fieldflow.shared.telemetry.logging import get_logger
from fieldflow.shared.telemetry.tracing import add_span_attributes, add_span_event, traced
from fieldflow.shared.utils.datetime import duration_ms, utc_now
from fieldflow.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from collections.abc import Callable

    from fieldflow.application.interfaces.repositories import IAutomationStore, IEntityGateway
    from fieldflow.application.interfaces.services import IDelayedActionScheduler
    from fieldflow.application.services.event_bus import EventBus

logger = get_logger(__name__)

DEFAULT_ACTION_TIMEOUT_SECONDS = 30.0

NO_TRIGGER_MATCHED = "No trigger conditions matched"
UNKNOWN_ACTION_TYPE = "Unknown action type"


def _jsonable(value: Any) -> Any:
    return to_jsonable_python(value, fallback=str)


@dataclass(frozen=True)
class _PreparedTrigger:
    trigger: Trigger
    conditions: list[Condition]


@dataclass(frozen=True)
class _PreparedAction:
    action: Action
    config: BaseModel | None


class _ChainAborted(Exception):
    """An action with continue_on_error=False failed."""

    def __init__(self, action: Action, error: Exception) -> None:
        super().__init__(str(error))
        self.action = action
        self.error = error


class WorkflowEngine:
    """Runs workflows for business events, scheduled jobs and manual requests."""

    def __init__(
        self,
        store: IAutomationStore,
        registry: ActionRegistry,
        *,
        scheduler: IDelayedActionScheduler | None = None,
        entity_gateway: IEntityGateway | None = None,
        action_timeout_seconds: float = DEFAULT_ACTION_TIMEOUT_SECONDS,
        refresh_entity_snapshot: bool = False,
    ) -> None:
        self.store = store
        self.registry = registry
        self.scheduler = scheduler
        self.entity_gateway = entity_gateway
        self.action_timeout_seconds = action_timeout_seconds
        self.refresh_entity_snapshot = refresh_entity_snapshot

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Subscribe to every business event on bus; returns the unsubscribe handle."""
        return bus.subscribe("*", self.handle_event)

    async def handle_event(self, event: BusinessEvent) -> None:
        """Wildcard listener: run the workflows for one event."""
        try:
            logger.info("Processing event: %s", event.event_type)
            await self.execute_workflows_for_event(
                event.event_type, event.entity_data, entity_id=event.entity_id
            )
        except Exception:
            logger.exception("Error processing event %s (%s)", event.event_type, event.event_id)

    @traced("workflow_engine.execute_workflows_for_event")
    async def execute_workflows_for_event(
        self,
        event_type: str,
        entity_data: dict[str, Any] | None,
        entity_id: str | None = None,
    ) -> list[WorkflowRunResult]:
        """Run every active workflow with a trigger of event_type, sequentially, by name.

        entity_id is the id the bus resolved for the event; without it the id is
        read from entity_data.
        """
        workflows = await self.store.list_workflows_for_trigger(event_type)
        if not workflows:
            logger.info("No active workflows for event: %s", event_type)
            return []

        logger.info("Found %s workflow(s) for event: %s", len(workflows), event_type)
        entity_data = entity_data or {}
        entity_id = entity_id or entity_data.get("id") or entity_data.get("entity_id")
        context = {
            "event_type": event_type,
            "entity_type": entity_type_for(event_type),
            "entity_id": str(entity_id) if entity_id else None,
            "entity_data": entity_data,
            "triggered_at": utc_now().isoformat(),
        }

        results: list[WorkflowRunResult] = []
        for workflow in workflows:
            try:
                results.append(await self.execute_workflow(workflow.id, context))
            except WorkflowNotFoundException:
                logger.warning(
                    "Workflow %s became inactive before execution (event %s)",
                    workflow.id,
                    event_type,
                )
        return results

    @traced("workflow_engine.execute_workflow")
    async def execute_workflow(
        self, workflow_id: str, context: dict[str, Any]
    ) -> WorkflowRunResult:
        """Run one workflow against a trigger context.

        Raises:
            WorkflowNotFoundException: Missing, inactive or deleted (nothing is logged).
        """
        workflow = await self.store.get_active_workflow(workflow_id)
        if workflow is None or not workflow.is_runnable:
            raise WorkflowNotFoundException(workflow_id)

        execution_id = generate_cuid()
        started_at = utc_now()
        context = dict(context or {})
        add_span_attributes(workflow_id=workflow.id, execution_id=execution_id)
        logger.info(
            "Starting workflow execution: %s (%s), execution_id=%s",
            workflow.name,
            workflow.id,
            execution_id,
        )

        results: list[ActionResult] = []
        trigger_id: str | None = context.get("trigger_id")
        log_context = context
        try:
            triggers, actions = self._prepare(workflow)

            deferred_action_id = context.get("deferred_action_id")
            if deferred_action_id:
                prepared = next(
                    (p for p in actions if p.action.id == deferred_action_id), None
                )
                if prepared is None:
                    raise WorkflowDefinitionException(
                        workflow.id,
                        f"deferred action {deferred_action_id} no longer exists",
                    )
                action_context = await self._refresh_entity_data(
                    dict(context.get("trigger_context") or {})
                )
                log_context = action_context
                trigger_type = context.get("trigger_type") or action_context.get("event_type")
                await self._log(
                    workflow, execution_id, ExecutionStatus.RUNNING,
                    trigger_id=trigger_id, trigger_type=trigger_type, context=action_context,
                    input_data=context, started_at=started_at,
                )
                await self._run_actions(
                    workflow, execution_id, trigger_id, [prepared], action_context,
                    results, allow_delay=False,
                )
            else:
                context = await self._refresh_entity_data(context)
                log_context = context
                matched = self._match_trigger(triggers, context)
                if triggers and matched is None:
                    logger.info("No trigger conditions matched, skipping workflow %s", workflow.id)
                    await self._log(
                        workflow, execution_id, ExecutionStatus.SKIPPED,
                        trigger_type=context.get("trigger_type") or context.get("event_type"),
                        context=context, input_data=context,
                        output_data={"reason": NO_TRIGGER_MATCHED},
                        started_at=started_at, completed_at=utc_now(),
                    )
                    return WorkflowRunResult(
                        success=True,
                        execution_id=execution_id,
                        workflow_id=workflow.id,
                        workflow_name=workflow.name,
                        skipped=True,
                        reason=NO_TRIGGER_MATCHED,
                    )

                if matched is not None:
                    trigger_id = matched.id
                    logger.info("Trigger matched: %s", matched.trigger_type)
                trigger_type = (
                    context.get("trigger_type")
                    or (matched.trigger_type if matched else None)
                    or context.get("event_type")
                )
                await self._log(
                    workflow, execution_id, ExecutionStatus.RUNNING,
                    trigger_id=trigger_id, trigger_type=trigger_type, context=context,
                    input_data=context, started_at=started_at,
                )
                await self._run_actions(
                    workflow, execution_id, trigger_id, actions, context, results,
                    allow_delay=True,
                )

            completed_at = utc_now()
            await self._log(
                workflow, execution_id, ExecutionStatus.COMPLETED,
                trigger_id=trigger_id, context=log_context,
                output_data={"results": [r.to_dict() for r in results]},
                started_at=started_at, completed_at=completed_at,
            )
            logger.info("Workflow completed: %s (%s)", workflow.name, execution_id)
            return WorkflowRunResult(
                success=True,
                execution_id=execution_id,
                workflow_id=workflow.id,
                workflow_name=workflow.name,
                results=results,
                duration_ms=duration_ms(started_at, completed_at),
            )
        except Exception as e:
            error = e.error if isinstance(e, _ChainAborted) else e
            logger.exception(
                "Workflow %s execution %s failed: %s", workflow.id, execution_id, error
            )
            try:
                await self._log(
                    workflow, execution_id, ExecutionStatus.FAILED,
                    trigger_id=trigger_id, context=log_context, input_data=context,
                    output_data={"results": [r.to_dict() for r in results]} if results else None,
                    error_message=str(error), started_at=started_at, completed_at=utc_now(),
                )
            except Exception:
                logger.exception("Could not record failure of execution %s", execution_id)
            return WorkflowRunResult(
                success=False,
                execution_id=execution_id,
                workflow_id=workflow.id,
                workflow_name=workflow.name,
                error=str(error),
                results=results,
            )

    def _prepare(
        self, workflow: WorkflowDefinition
    ) -> tuple[list[_PreparedTrigger], list[_PreparedAction]]:
        """Order and validate triggers and actions before anything runs."""
        triggers: list[_PreparedTrigger] = []
        for trigger in workflow.ordered_triggers():
            try:
                triggers.append(_PreparedTrigger(trigger, trigger.parse_conditions()))
            except ValueError as e:
                raise WorkflowDefinitionException(
                    workflow.id, f"trigger {trigger.id}: {e}", trigger_id=trigger.id
                ) from e

        actions: list[_PreparedAction] = []
        for action in workflow.ordered_actions():
            if action.delay_minutes < 0:
                raise WorkflowDefinitionException(
                    workflow.id,
                    f"action {action.id}: delay_minutes must not be negative",
                    action_id=action.id,
                )
            try:
                config = self.registry.validate_config(action.action_type, action.config)
            except ValueError as e:
                raise WorkflowDefinitionException(
                    workflow.id, f"action {action.id}: {e}", action_id=action.id
                ) from e
            actions.append(_PreparedAction(action, config))
        return triggers, actions

    @staticmethod
    def _match_trigger(
        triggers: list[_PreparedTrigger], context: dict[str, Any]
    ) -> Trigger | None:
        """First trigger whose conditions all hold (no conditions: always holds)."""
        entity_data = context.get("entity_data")
        for prepared in triggers:
            if not prepared.conditions:
                return prepared.trigger
            if entity_data is not None and evaluate_all(prepared.conditions, entity_data):
                return prepared.trigger
        return None

    async def _refresh_entity_data(self, context: dict[str, Any]) -> dict[str, Any]:
        """Overlay the current row of the entity onto entity_data when enabled."""
        if not self.refresh_entity_snapshot or self.entity_gateway is None:
            return context
        entity_type, entity_id = context.get("entity_type"), context.get("entity_id")
        if not entity_type or not entity_id:
            return context
        try:
            snapshot = await self.entity_gateway.get_snapshot(entity_type, entity_id)
        except Exception as e:
            logger.warning("Could not refresh %s %s: %s", entity_type, entity_id, e)
            return context
        if snapshot:
            entity_data = {**(context.get("entity_data") or {}), **snapshot}
            context = {**context, "entity_data": entity_data}
        return context

    async def _run_actions(
        self,
        workflow: WorkflowDefinition,
        execution_id: str,
        trigger_id: str | None,
        actions: list[_PreparedAction],
        context: dict[str, Any],
        results: list[ActionResult],
        *,
        allow_delay: bool,
    ) -> None:
        for prepared in actions:
            action = prepared.action
            action_started_at = utc_now()
            try:
                if allow_delay and action.delay_minutes > 0:
                    results.append(
                        await self._defer_action(
                            workflow, execution_id, trigger_id, action, context,
                            action_started_at,
                        )
                    )
                    continue

                handler = self.registry.get(action.action_type)
                if handler is None:
                    logger.warning("Unknown action type: %s", action.action_type)
                    await self._log(
                        workflow, execution_id, ExecutionStatus.SKIPPED,
                        trigger_id=trigger_id, action=action, context=context,
                        input_data={"config": action.config},
                        output_data={"reason": UNKNOWN_ACTION_TYPE},
                        started_at=action_started_at, completed_at=utc_now(),
                    )
                    results.append(
                        ActionResult(
                            action_id=action.id,
                            action_type=action.action_type,
                            status=ExecutionStatus.SKIPPED.value,
                            reason=UNKNOWN_ACTION_TYPE,
                        )
                    )
                    continue

                logger.info("Executing action: %s (%s)", action.action_type, action.id)
                action_context = ActionContext(
                    workflow_id=workflow.id,
                    execution_id=execution_id,
                    action_id=action.id,
                    trigger=context,
                )
                try:
                    output = await asyncio.wait_for(
                        handler.execute(prepared.config, action_context),
                        timeout=self.action_timeout_seconds,
                    )
                except TimeoutError as e:
                    raise ActionTimeoutException(
                        action.action_type, self.action_timeout_seconds
                    ) from e
                output = _jsonable(output or {})
                await self._log(
                    workflow, execution_id, ExecutionStatus.COMPLETED,
                    trigger_id=trigger_id, action=action, context=context,
                    input_data={"config": action.config},
                    output_data=output,
                    started_at=action_started_at, completed_at=utc_now(),
                )
                results.append(
                    ActionResult(
                        action_id=action.id,
                        action_type=action.action_type,
                        status=ExecutionStatus.COMPLETED.value,
                        output=output,
                    )
                )
            except Exception as e:
                logger.error("Action error (%s, %s): %s", action.action_type, action.id, e)
                add_span_event(
                    "action_failed",
                    {"action_id": action.id, "action_type": action.action_type},
                )
                await self._log(
                    workflow, execution_id, ExecutionStatus.FAILED,
                    trigger_id=trigger_id, action=action, context=context,
                    input_data={"config": action.config},
                    error_message=str(e),
                    started_at=action_started_at, completed_at=utc_now(),
                )
                results.append(
                    ActionResult(
                        action_id=action.id,
                        action_type=action.action_type,
                        status=ExecutionStatus.FAILED.value,
                        error=str(e),
                    )
                )
                if not action.continue_on_error:
                    raise _ChainAborted(action, e) from e

    async def _defer_action(
        self,
        workflow: WorkflowDefinition,
        execution_id: str,
        trigger_id: str | None,
        action: Action,
        context: dict[str, Any],
        started_at: datetime,
    ) -> ActionResult:
        if self.scheduler is None:
            raise ActionExecutionException(
                action.action_type, "Delayed actions need a scheduler; none is configured"
            )
        logger.info(
            "Scheduling delayed action: %s (delay: %s min)",
            action.action_type,
            action.delay_minutes,
        )
        job_id, scheduled_for = await self.scheduler.schedule_delayed_action(
            workflow.id,
            trigger_id,
            action.delay_minutes,
            {"deferred_action_id": action.id, "trigger_context": _jsonable(context)},
        )
        output = {"scheduled_job_id": job_id, "scheduled_for": scheduled_for.isoformat()}
        await self._log(
            workflow, execution_id, ExecutionStatus.SCHEDULED,
            trigger_id=trigger_id, action=action, context=context,
            input_data={"config": action.config, "delay_minutes": action.delay_minutes},
            output_data=output, started_at=started_at,
        )
        return ActionResult(
            action_id=action.id,
            action_type=action.action_type,
            status=ExecutionStatus.SCHEDULED.value,
            output=output,
            scheduled_for=scheduled_for,
        )

    async def _log(
        self,
        workflow: WorkflowDefinition,
        execution_id: str,
        status: ExecutionStatus,
        *,
        context: dict[str, Any],
        trigger_id: str | None = None,
        trigger_type: str | None = None,
        action: Action | None = None,
        input_data: dict[str, Any] | None = None,
        output_data: dict[str, Any] | None = None,
        error_message: str | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> None:
        await self.store.insert_log(
            ExecutionLogCreate(
                execution_id=execution_id,
                status=status.value,
                workflow_id=workflow.id,
                trigger_id=trigger_id,
                action_id=action.id if action else None,
                trigger_type=trigger_type,
                entity_type=context.get("entity_type"),
                entity_id=context.get("entity_id"),
                action_type=action.action_type if action else None,
                input_data=_jsonable(input_data) if input_data is not None else None,
                output_data=_jsonable(output_data) if output_data is not None else None,
                error_message=error_message,
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=duration_ms(started_at, completed_at),
            )
        )
