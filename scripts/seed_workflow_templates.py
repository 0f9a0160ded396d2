"""Seed the built-in workflow templates into Postgres.

Templates are inserted inactive with is_template=true; operators copy and
activate them. Existing templates (matched by name) are left untouched.

Usage:
    python -m scripts.seed_workflow_templates

Requires: DATABASE_URL (Postgres) and migrations applied (alembic upgrade head).
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any

from fieldflow.infrastructure.persistence import database
from fieldflow.infrastructure.persistence.repositories.workflow_repo import WorkflowRepository
from fieldflow.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger(__name__)

DAY_MINUTES = 24 * 60

TEMPLATES: list[dict[str, Any]] = [
    {
        "name": "Quote Follow-up Sequence",
        "description": "Follow up on quotes that haven't received a response after 3 and 5 days",
        "template_category": "sales",
        "triggers": [{"trigger_type": "quote_sent"}],
        "actions": [
            {
                "action_type": "send_email",
                "config": {"template_id": "quote_followup_3_days"},
                "delay_minutes": 3 * DAY_MINUTES,
            },
            {
                "action_type": "create_task",
                "config": {"title": "Call customer about open quote", "due_in_days": 1},
                "delay_minutes": 5 * DAY_MINUTES,
            },
        ],
    },
    {
        "name": "Job Completion Workflow",
        "description": "When a job is marked complete: send a survey and draft an invoice",
        "template_category": "operations",
        "triggers": [{"trigger_type": "job_completed"}],
        "actions": [
            {"action_type": "send_email", "config": {"template_id": "job_completed_survey"}},
            {"action_type": "create_invoice", "config": {"due_in_days": 30}},
        ],
    },
    {
        "name": "Invoice Overdue Reminders",
        "description": "Send reminders when invoices are at least 7 days overdue",
        "template_category": "billing",
        "cooldown_minutes": 7 * DAY_MINUTES,
        "triggers": [
            {
                "trigger_type": "invoice_overdue",
                "conditions": [{"field": "days_overdue", "operator": ">=", "value": 7}],
            }
        ],
        "actions": [
            {"action_type": "send_email", "config": {"template_id": "invoice_overdue_reminder"}},
            {"action_type": "send_sms", "config": {"template_id": "payment_reminder"}},
        ],
    },
    {
        "name": "New Lead Welcome Sequence",
        "description": "When a new lead is created: create a follow-up task and mark it contacted",
        "template_category": "sales",
        "triggers": [{"trigger_type": "lead_created"}],
        "actions": [
            {
                "action_type": "create_task",
                "config": {"title": "Contact new lead", "due_in_days": 1, "priority": "high"},
            },
            {"action_type": "update_lead_stage", "config": {"new_stage": "contacted"}},
        ],
    },
]


async def seed() -> int:
    """Insert missing templates; returns how many were created."""
    created = 0
    async with database.get_session_factory()() as session:
        repo = WorkflowRepository(session)
        for template in TEMPLATES:
            if await repo.get_by_name(template["name"]) is not None:
                logger.info("Template exists, skipping: %s", template["name"])
                continue
            fields = dict(template)
            await repo.create_workflow(
                fields.pop("name"),
                triggers=fields.pop("triggers"),
                actions=fields.pop("actions"),
                is_active=False,
                is_template=True,
                **fields,
            )
            created += 1
            logger.info("Created template: %s", template["name"])
        await session.commit()
    await database.dispose_engine()
    return created


def main() -> int:
    setup_logging()
    if not database.is_configured():
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1
    created = asyncio.run(seed())
    print(f"Seeded {created} workflow template(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
