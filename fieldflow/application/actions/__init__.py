"""Action handlers and their registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fieldflow.application.actions.follow_ups import CreateReminderHandler, CreateTaskHandler
from fieldflow.application.actions.notify import SendEmailHandler, SendSmsHandler
from fieldflow.application.actions.records import (
    CreateInvoiceHandler,
    UpdateJobStatusHandler,
    UpdateLeadStageHandler,
)
from fieldflow.application.actions.registry import ActionContext, ActionHandler, ActionRegistry

if TYPE_CHECKING:
    from fieldflow.application.interfaces.repositories import IAutomationStore, IEntityGateway
    from fieldflow.application.interfaces.services import (
        IEmailSender,
        IMessageTemplateRenderer,
        ISmsSender,
    )


def build_default_registry(
    *,
    store: IAutomationStore,
    gateway: IEntityGateway,
    email_sender: IEmailSender,
    sms_sender: ISmsSender,
    renderer: IMessageTemplateRenderer,
    company_name: str,
    base_url: str,
    company_phone: str = "",
) -> ActionRegistry:
    """Registry with the seven built-in handlers."""
    registry = ActionRegistry()
    registry.register(
        SendEmailHandler(
            email_sender,
            renderer,
            company_name=company_name,
            base_url=base_url,
            company_phone=company_phone,
        )
    )
    registry.register(
        SendSmsHandler(
            sms_sender,
            renderer,
            company_name=company_name,
            base_url=base_url,
            company_phone=company_phone,
        )
    )
    registry.register(CreateTaskHandler(store))
    registry.register(CreateReminderHandler(store))
    registry.register(UpdateLeadStageHandler(gateway))
    registry.register(UpdateJobStatusHandler(gateway))
    registry.register(CreateInvoiceHandler(gateway))
    return registry


__all__ = [
    "ActionContext",
    "ActionHandler",
    "ActionRegistry",
    "build_default_registry",
]
