"""Email and SMS message templates rendered with Jinja.

Templates use {{ variable }} placeholders; unknown variables render empty.
"""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, Template

# template id -> (subject, body_html, body_text)
_DEFAULT_EMAIL_TEMPLATES: dict[str, tuple[str, str, str]] = {
    "quote_followup_3_days": (
        "Following up on your service quote",
        "<p>Hi {{customer_name}},</p><p>I wanted to follow up on the quote we sent you "
        "for work at {{property_address}}.</p><p>The total for the proposed work is "
        "{{quote_amount}}.</p><p>If you have any questions or would like to proceed, "
        "please don't hesitate to reach out.</p><p>Best regards,<br>{{company_name}}</p>",
        "Hi {{customer_name}}, I wanted to follow up on the quote we sent you for work at "
        "{{property_address}}. The total for the proposed work is {{quote_amount}}. If you "
        "have any questions or would like to proceed, please don't hesitate to reach out. "
        "Best regards, {{company_name}}",
    ),
    "job_completed_survey": (
        "How did we do? Your feedback matters",
        "<p>Hi {{customer_name}},</p><p>Thank you for choosing {{company_name}} for your "
        "recent service!</p><p>We'd love to hear about your experience. Your feedback helps "
        "us improve and serve you better.</p><p><a href=\"{{survey_link}}\">Click here to "
        "share your feedback</a></p><p>Thank you for your business!</p>",
        "Hi {{customer_name}}, Thank you for choosing {{company_name}} for your recent "
        "service! We'd love to hear about your experience. Please visit {{survey_link}} to "
        "share your feedback. Thank you for your business!",
    ),
    "invoice_overdue_reminder": (
        "Payment Reminder: Invoice {{invoice_number}} is overdue",
        "<p>Hi {{customer_name}},</p><p>This is a friendly reminder that Invoice "
        "#{{invoice_number}} for {{invoice_amount}} was due on {{due_date}}.</p><p>Please "
        "arrange payment at your earliest convenience. You can pay online by clicking the "
        "link below:</p><p><a href=\"{{payment_link}}\">Pay Invoice Now</a></p><p>If you've "
        "already made this payment, please disregard this message.</p><p>Thank you,<br>"
        "{{company_name}}</p>",
        "Hi {{customer_name}}, This is a friendly reminder that Invoice #{{invoice_number}} "
        "for {{invoice_amount}} was due on {{due_date}}. Please arrange payment at your "
        "earliest convenience. Pay online: {{payment_link}}. If you've already made this "
        "payment, please disregard this message. Thank you, {{company_name}}",
    ),
}

_DEFAULT_SMS_TEMPLATES: dict[str, str] = {
    "quote_sent": (
        "Hi {{customer_name}}! Your quote from {{company_name}} is ready. "
        "View it here: {{quote_link}}"
    ),
    "job_reminder": (
        "Reminder: {{company_name}} is scheduled to arrive {{job_date}} for your service. "
        "Questions? Call {{company_phone}}"
    ),
    "crew_on_the_way": (
        "Great news! Our crew is on the way to {{property_address}}. ETA: {{eta}}. "
        "See you soon! - {{company_name}}"
    ),
    "payment_reminder": (
        "Hi {{customer_name}}, your invoice #{{invoice_number}} for {{invoice_amount}} "
        "is overdue. Pay now: {{payment_link}}"
    ),
}


class MessageTemplateRenderer:
    """Renders inline strings and named email/SMS templates."""

    def __init__(
        self,
        email_templates: dict[str, tuple[str, str, str]] | None = None,
        sms_templates: dict[str, str] | None = None,
    ) -> None:
        """Initialize with optional template dicts; falls back to the built-in defaults."""
        self._email_templates = email_templates or _DEFAULT_EMAIL_TEMPLATES
        self._sms_templates = sms_templates or _DEFAULT_SMS_TEMPLATES
        self._env = Environment(autoescape=False)
        self._cache: dict[str, Template] = {}

    def _compile(self, source: str) -> Template:
        template = self._cache.get(source)
        if template is None:
            template = self._env.from_string(source)
            self._cache[source] = template
        return template

    def render_string(self, source: str | None, variables: dict[str, Any]) -> str:
        if not source:
            return ""
        return self._compile(source).render(**variables)

    def get_email_template(self, template_id: str) -> dict[str, str] | None:
        template = self._email_templates.get(template_id)
        if template is None:
            return None
        subject, body_html, body_text = template
        return {"subject": subject, "body_html": body_html, "body_text": body_text}

    def get_sms_template(self, template_id: str) -> str | None:
        return self._sms_templates.get(template_id)

    def email_template_ids(self) -> list[str]:
        return sorted(self._email_templates)

    def sms_template_ids(self) -> list[str]:
        return sorted(self._sms_templates)
