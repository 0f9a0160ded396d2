"""Column mixins shared by the automation tables.

Definition tables (workflows, triggers, actions, scheduled jobs) are mutable
and use AutomationModel. Execution logs, follow-ups and job transitions are
written once and use AppendOnlyModel.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from fieldflow.shared.utils.generators import generate_cuid


class CuidMixin:
    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class CreatedAtMixin:
    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )


class SoftDeleteMixin:
    """deleted_at set means the row is hidden from every engine lookup."""

    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)


class AppendOnlyModel(CuidMixin, CreatedAtMixin):
    __abstract__ = True


class AutomationModel(CuidMixin, CreatedAtMixin):
    """CUID key plus created_at/updated_at, bumped by the database on update."""

    __abstract__ = True

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )
