"""Business record access (quotes, jobs, invoices, leads).

These tables are owned by the CRUD service, so they are addressed with SQL
text rather than ORM models. Table names come from a fixed whitelist.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from fieldflow.shared.enums import EntityType
from fieldflow.shared.utils.generators import generate_cuid

ENTITY_TABLES: dict[str, str] = {
    EntityType.QUOTE.value: "quotes",
    EntityType.JOB.value: "jobs",
    EntityType.INVOICE.value: "invoices",
    EntityType.LEAD.value: "leads",
}

DRAFT_INVOICE_STATUS = "Draft"


class EntityGatewayRepository:
    """Reads entity snapshots and applies the record mutations actions need."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_snapshot(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        table = ENTITY_TABLES.get(entity_type)
        if table is None:
            return None
        result = await self.db.execute(
            text(f"SELECT * FROM {table} WHERE id = :id"), {"id": entity_id}
        )
        row = result.mappings().first()
        return dict(row) if row is not None else None

    async def update_lead_stage(self, lead_id: str, stage: str) -> bool:
        result = await self.db.execute(
            text("UPDATE leads SET stage = :stage, updated_at = NOW() WHERE id = :id"),
            {"stage": stage, "id": lead_id},
        )
        return result.rowcount > 0

    async def update_job_status(self, job_id: str, status: str) -> bool:
        result = await self.db.execute(
            text("UPDATE jobs SET status = :status, updated_at = NOW() WHERE id = :id"),
            {"status": status, "id": job_id},
        )
        return result.rowcount > 0

    async def get_job_status(self, job_id: str) -> str | None:
        result = await self.db.execute(
            text("SELECT status FROM jobs WHERE id = :id"), {"id": job_id}
        )
        return result.scalar_one_or_none()

    async def create_draft_invoice(
        self,
        *,
        job_id: str | None,
        client_id: str | None,
        amount: float | None,
        due_date: datetime,
        line_items: list[dict[str, Any]],
    ) -> str:
        """Insert a Draft invoice; customer_name is copied from the job when known."""
        invoice_id = generate_cuid()
        await self.db.execute(
            text(
                "INSERT INTO invoices "
                "(id, job_id, client_id, customer_name, status, amount, line_items, due_date) "
                "VALUES (:id, :job_id, :client_id, "
                "COALESCE((SELECT customer_name FROM jobs WHERE id = :job_id), ''), "
                ":status, :amount, CAST(:line_items AS JSONB), :due_date)"
            ),
            {
                "id": invoice_id,
                "job_id": job_id,
                "client_id": client_id,
                "status": DRAFT_INVOICE_STATUS,
                "amount": amount or 0,
                "line_items": json.dumps(line_items),
                "due_date": due_date.date().isoformat(),
            },
        )
        return invoice_id
