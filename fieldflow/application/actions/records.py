"""Handlers that mutate business records: lead stage, job status, draft invoice."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from fieldflow.application.actions.configs import (
    CreateInvoiceConfig,
    UpdateJobStatusConfig,
    UpdateLeadStageConfig,
)
from fieldflow.application.actions.registry import ActionContext, ActionHandler
from fieldflow.domain.exceptions import ActionExecutionException
from fieldflow.shared.enums import ActionType
from fieldflow.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from fieldflow.application.interfaces.repositories import IEntityGateway


class UpdateLeadStageHandler(ActionHandler):
    action_type = ActionType.UPDATE_LEAD_STAGE.value
    config_model = UpdateLeadStageConfig

    def __init__(self, gateway: IEntityGateway) -> None:
        self.gateway = gateway

    async def execute(
        self, config: UpdateLeadStageConfig, context: ActionContext
    ) -> dict[str, Any]:
        lead_id = context.entity_id
        if not lead_id:
            raise ActionExecutionException(self.action_type, "Lead ID not found in context")
        updated = await self.gateway.update_lead_stage(lead_id, config.new_stage)
        if not updated:
            raise ActionExecutionException(
                self.action_type, f"Lead not found: {lead_id}", {"lead_id": lead_id}
            )
        return {"lead_id": lead_id, "new_stage": config.new_stage}


class UpdateJobStatusHandler(ActionHandler):
    """Writes jobs.status directly; it does not go through JobStateMachine."""

    action_type = ActionType.UPDATE_JOB_STATUS.value
    config_model = UpdateJobStatusConfig

    def __init__(self, gateway: IEntityGateway) -> None:
        self.gateway = gateway

    async def execute(
        self, config: UpdateJobStatusConfig, context: ActionContext
    ) -> dict[str, Any]:
        job_id = context.entity_id
        if not job_id:
            raise ActionExecutionException(self.action_type, "Job ID not found in context")
        updated = await self.gateway.update_job_status(job_id, config.new_status)
        if not updated:
            raise ActionExecutionException(
                self.action_type, f"Job not found: {job_id}", {"job_id": job_id}
            )
        return {"job_id": job_id, "new_status": config.new_status}


class CreateInvoiceHandler(ActionHandler):
    action_type = ActionType.CREATE_INVOICE.value
    config_model = CreateInvoiceConfig

    def __init__(self, gateway: IEntityGateway) -> None:
        self.gateway = gateway

    async def execute(
        self, config: CreateInvoiceConfig, context: ActionContext
    ) -> dict[str, Any]:
        data = context.entity_data
        job_id = data.get("id") or data.get("job_id")
        client_id = data.get("client_id")
        amount = config.amount
        if amount is None and config.line_items:
            amount = sum(
                float(item.get("quantity", 1) or 1) * float(item.get("unit_price", 0) or 0)
                for item in config.line_items
            )
        due_date = utc_now() + timedelta(days=config.due_in_days)
        invoice_id = await self.gateway.create_draft_invoice(
            job_id=str(job_id) if job_id else None,
            client_id=str(client_id) if client_id else None,
            amount=amount,
            due_date=due_date,
            line_items=config.line_items,
        )
        return {
            "invoice_id": invoice_id,
            "job_id": job_id,
            "client_id": client_id,
            "amount": amount,
            "due_date": due_date.date().isoformat(),
        }
