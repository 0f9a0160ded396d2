"""JobStateTransition ORM model. Immutable job lifecycle history."""

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fieldflow.infrastructure.persistence.database import Base
from fieldflow.infrastructure.persistence.models.mixins import AppendOnlyModel


class JobStateTransition(AppendOnlyModel, Base):
    """One job state change. Table: job_state_transitions.

    jobs itself is owned by the CRUD service; job_id is not a foreign key here.
    """

    __tablename__ = "job_state_transitions"

    job_id: Mapped[str] = mapped_column(String, nullable=False)
    from_state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    to_state: Mapped[str] = mapped_column(String(50), nullable=False)
    changed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    changed_by_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    change_source: Mapped[str] = mapped_column(
        String(20), nullable=False, default="manual", server_default="manual"
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_job_state_transitions_job_created", "job_id", "created_at"),
    )
