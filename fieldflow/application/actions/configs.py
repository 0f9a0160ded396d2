"""Config models per action type, validated when a workflow definition is loaded."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActionConfig(BaseModel):
    """Base for action configs; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")


def _as_list(value: Any) -> list[str] | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value]


class SendEmailConfig(ActionConfig):
    template_id: str | None = None
    subject: str | None = None
    body: str | None = None
    to: str | None = None
    cc: list[str] | None = None
    bcc: list[str] | None = None

    @field_validator("cc", "bcc", mode="before")
    @classmethod
    def split_addresses(cls, value: Any) -> list[str] | None:
        return _as_list(value)


class SendSmsConfig(ActionConfig):
    template_id: str | None = None
    message: str | None = None
    to: str | None = None


class CreateTaskConfig(ActionConfig):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    due_in_days: float = Field(default=3, ge=0)
    assign_to: str | None = None
    priority: str = "normal"


class CreateReminderConfig(ActionConfig):
    title: str = Field(..., min_length=1, max_length=255)
    remind_at: datetime | None = None
    remind_in_hours: float | None = Field(default=None, gt=0)
    remind_in_days: float = Field(default=1, gt=0)


class UpdateLeadStageConfig(ActionConfig):
    new_stage: str = Field(..., min_length=1, max_length=100)


class UpdateJobStatusConfig(ActionConfig):
    new_status: str = Field(..., min_length=1, max_length=100)


class CreateInvoiceConfig(ActionConfig):
    amount: float | None = Field(default=None, ge=0)
    due_in_days: int = Field(default=30, ge=0)
    line_items: list[dict[str, Any]] = Field(default_factory=list)
