"""Workflow API: operator-initiated runs."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from fieldflow.api.v1.dependencies import get_workflow_engine
from fieldflow.application.services.workflow_engine import WorkflowEngine
from fieldflow.core.limiter import limit_writes
from fieldflow.schemas.automation import WorkflowExecuteRequest, WorkflowRunResponse
from fieldflow.shared.enums import MANUAL_TRIGGER_TYPE
from fieldflow.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{workflow_id}/execute", response_model=WorkflowRunResponse)
@limit_writes
async def execute_workflow(
    request: Request,
    workflow_id: str,
    body: WorkflowExecuteRequest,
    engine: Annotated[WorkflowEngine, Depends(get_workflow_engine)],
) -> WorkflowRunResponse:
    """Run one workflow now. Trigger conditions are evaluated against entity_data."""
    entity_id = body.entity_id or body.entity_data.get("id")
    context = {
        "trigger_type": MANUAL_TRIGGER_TYPE,
        "entity_type": body.entity_type,
        "entity_id": entity_id,
        "entity_data": body.entity_data,
        "triggered_by": body.triggered_by,
        "triggered_at": utc_now().isoformat(),
    }
    logger.info("Manual execution of workflow %s by %s", workflow_id, body.triggered_by)
    result = await engine.execute_workflow(workflow_id, context)
    return WorkflowRunResponse.model_validate(result)
