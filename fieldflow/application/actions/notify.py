"""send_email and send_sms handlers.

Message text comes from the action config or a stored template and is
rendered with variables built from the trigger context (customer, quote,
invoice and job fields). Delivery goes through IEmailSender / ISmsSender,
which fall back to logging when no provider is configured.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from fieldflow.application.actions.configs import SendEmailConfig, SendSmsConfig
from fieldflow.application.actions.registry import ActionContext, ActionHandler
from fieldflow.domain.exceptions import ActionExecutionException
from fieldflow.shared.enums import ActionType, EntityType

if TYPE_CHECKING:
    from fieldflow.application.interfaces.services import (
        IEmailSender,
        IMessageTemplateRenderer,
        ISmsSender,
    )

logger = logging.getLogger(__name__)

SMS_SEGMENT_LENGTH = 160


def _first(data: dict[str, Any], *keys: str, default: str = "") -> Any:
    for key in keys:
        if data.get(key):
            return data[key]
    return default


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_currency(amount: Any) -> str:
    value = _to_float(amount)
    if not value:
        return "$0.00"
    return f"${value:,.2f}"


def format_currency_short(amount: Any) -> str:
    value = _to_float(amount)
    if not value:
        return "$0"
    return f"${value:,.0f}"


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date_long(value: Any) -> str:
    """Monday, January 5, 2026"""
    parsed = _parse_date(value)
    if parsed is None:
        return ""
    return f"{parsed:%A}, {parsed:%B} {parsed.day}, {parsed.year}"


def format_date_short(value: Any) -> str:
    """Mon, Jan 5"""
    parsed = _parse_date(value)
    if parsed is None:
        return ""
    return f"{parsed:%a}, {parsed:%b} {parsed.day}"


def format_address(data: dict[str, Any]) -> str:
    parts = [
        data.get("address_line1") or data.get("job_location"),
        data.get("city"),
        data.get("state"),
        data.get("zip_code"),
    ]
    return ", ".join(str(p) for p in parts if p)


def format_phone_number(phone: str | None) -> str | None:
    """Normalize to E.164, assuming North America when no country code is given."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", str(phone))
    if not digits:
        return None
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if str(phone).strip().startswith("+"):
        return f"+{digits}"
    return f"+1{digits}"


def build_email_variables(
    context: ActionContext, company_name: str, base_url: str, company_phone: str = ""
) -> dict[str, Any]:
    """Template variables for emails."""
    data = context.entity_data
    entity_type = context.entity_type
    entity_ref = str(data.get("id") or "")
    variables: dict[str, Any] = {
        "company_name": company_name,
        "company_phone": company_phone,
        "customer_name": _first(
            data, "customer_name", "first_name", "name", default="Valued Customer"
        ),
        "customer_email": _first(data, "email", "customer_email", "primary_email"),
        "customer_phone": _first(data, "phone", "customer_phone", "primary_phone"),
    }
    if entity_type == EntityType.QUOTE.value or data.get("quote_id"):
        quote_id = data.get("id") or data.get("quote_id")
        variables.update(
            quote_number=data.get("quote_number") or entity_ref[:8],
            quote_amount=format_currency(data.get("total_amount") or data.get("amount")),
            quote_link=f"{base_url}/quotes/{quote_id}",
            property_address=format_address(data),
        )
    if entity_type == EntityType.INVOICE.value or data.get("invoice_id"):
        invoice_id = data.get("id") or data.get("invoice_id")
        variables.update(
            invoice_number=data.get("invoice_number") or entity_ref[:8],
            invoice_amount=format_currency(data.get("total_amount") or data.get("amount")),
            due_date=format_date_long(data.get("due_date")),
            payment_link=f"{base_url}/invoices/{invoice_id}/pay",
        )
    if entity_type == EntityType.JOB.value or data.get("job_id"):
        job_id = data.get("id") or data.get("job_id")
        variables.update(
            job_number=data.get("job_number") or "",
            job_date=format_date_long(data.get("scheduled_date")),
            job_description=data.get("description") or data.get("special_instructions") or "",
            survey_link=f"{base_url}/feedback/{job_id}",
        )
    return variables


def build_sms_variables(
    context: ActionContext, company_name: str, base_url: str, company_phone: str = ""
) -> dict[str, Any]:
    """Template variables for SMS (shorter formats)."""
    data = context.entity_data
    entity_type = context.entity_type
    variables: dict[str, Any] = {
        "company_name": company_name,
        "company_phone": company_phone,
        "customer_name": _first(data, "customer_name", "first_name", default="there"),
        "customer_phone": _first(data, "phone", "customer_phone", "primary_phone"),
    }
    if entity_type == EntityType.QUOTE.value:
        variables.update(
            quote_amount=format_currency_short(data.get("total_amount") or data.get("amount")),
            quote_link=f"{base_url}/quotes/{data.get('id')}",
        )
    if entity_type == EntityType.INVOICE.value:
        variables.update(
            invoice_number=data.get("invoice_number") or "",
            invoice_amount=format_currency_short(data.get("total_amount") or data.get("amount")),
            payment_link=f"{base_url}/invoices/{data.get('id')}/pay",
        )
    if entity_type == EntityType.JOB.value:
        variables.update(
            job_date=format_date_short(data.get("scheduled_date")),
            eta=data.get("eta") or "soon",
            property_address=(
                data.get("address_line1") or data.get("job_location") or "your property"
            ),
        )
    return variables


class SendEmailHandler(ActionHandler):
    action_type = ActionType.SEND_EMAIL.value
    config_model = SendEmailConfig

    def __init__(
        self,
        sender: IEmailSender,
        renderer: IMessageTemplateRenderer,
        *,
        company_name: str,
        base_url: str,
        company_phone: str = "",
    ) -> None:
        self.sender = sender
        self.renderer = renderer
        self.company_name = company_name
        self.base_url = base_url.rstrip("/")
        self.company_phone = company_phone

    async def execute(self, config: SendEmailConfig, context: ActionContext) -> dict[str, Any]:
        variables = build_email_variables(
            context, self.company_name, self.base_url, self.company_phone
        )

        subject, html, text = config.subject, config.body, config.body
        if config.template_id:
            template = self.renderer.get_email_template(config.template_id)
            if template is None:
                logger.warning("Email template %s not found", config.template_id)
            else:
                subject = subject or template["subject"]
                html = template["body_html"]
                text = template.get("body_text") or template["body_html"]

        rendered_subject = self.renderer.render_string(subject, variables)
        rendered_html = self.renderer.render_string(html, variables)
        rendered_text = self.renderer.render_string(text, variables)

        data = context.entity_data
        recipient = config.to or _first(data, "email", "customer_email", "primary_email") or None
        if not recipient:
            raise ActionExecutionException(self.action_type, "No recipient email address")
        if not rendered_subject and not rendered_html:
            raise ActionExecutionException(
                self.action_type, "Email has neither subject nor body"
            )

        output = await self.sender.send(
            to=recipient,
            subject=rendered_subject,
            html=rendered_html,
            text=rendered_text,
            cc=config.cc,
            bcc=config.bcc,
        )
        return {"recipient": recipient, "subject": rendered_subject, **output}


class SendSmsHandler(ActionHandler):
    action_type = ActionType.SEND_SMS.value
    config_model = SendSmsConfig

    def __init__(
        self,
        sender: ISmsSender,
        renderer: IMessageTemplateRenderer,
        *,
        company_name: str,
        base_url: str,
        company_phone: str = "",
    ) -> None:
        self.sender = sender
        self.renderer = renderer
        self.company_name = company_name
        self.base_url = base_url.rstrip("/")
        self.company_phone = company_phone

    async def execute(self, config: SendSmsConfig, context: ActionContext) -> dict[str, Any]:
        variables = build_sms_variables(
            context, self.company_name, self.base_url, self.company_phone
        )

        source = config.message
        if config.template_id and not source:
            source = self.renderer.get_sms_template(config.template_id)
            if source is None:
                logger.warning("SMS template %s not found", config.template_id)
        message = self.renderer.render_string(source, variables)
        if not message:
            raise ActionExecutionException(self.action_type, "SMS message is empty")
        if len(message) > SMS_SEGMENT_LENGTH:
            logger.warning(
                "Message exceeds %s chars (%s), may be split into multiple SMS",
                SMS_SEGMENT_LENGTH,
                len(message),
            )

        data = context.entity_data
        recipient = format_phone_number(
            config.to or _first(data, "phone", "customer_phone", "primary_phone") or None
        )
        if not recipient:
            raise ActionExecutionException(self.action_type, "No recipient phone number")

        output = await self.sender.send(to=recipient, body=message)
        return {"recipient": recipient, "message": message, **output}
