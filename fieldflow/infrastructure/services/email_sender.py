"""Email delivery: SendGrid over HTTP, or log-only when no API key is configured."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx

from fieldflow.domain.exceptions import ActionExecutionException
from fieldflow.shared.enums import ActionType
from fieldflow.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class LogOnlyEmailSender:
    """IEmailSender implementation that logs instead of sending.

    Used when SENDGRID_API_KEY is not set.
    """

    async def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        text: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
    ) -> dict[str, Any]:
        logger.info(
            "Email provider not configured, logging email instead (to=%s, subject=%r)",
            to,
            (subject or "")[:80],
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Email body preview: %s", (text or "")[:100])
        return {"simulated": True, "note": "Email logged (SendGrid not configured)"}


class SendGridEmailSender:
    """IEmailSender backed by the SendGrid v3 mail/send endpoint."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        from_name: str | None = None,
        timeout_seconds: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._from_name = from_name
        self._timeout = timeout_seconds
        self._shared_http = http_client

    @asynccontextmanager
    async def _http_cm(self):
        """Yield shared HTTP client or a short-lived one."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    def _build_payload(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        cc: list[str] | None,
        bcc: list[str] | None,
    ) -> dict[str, Any]:
        personalization: dict[str, Any] = {"to": [{"email": to}]}
        if cc:
            personalization["cc"] = [{"email": e} for e in cc]
        if bcc:
            personalization["bcc"] = [{"email": e} for e in bcc]
        sender: dict[str, str] = {"email": self._from_email}
        if self._from_name:
            sender["name"] = self._from_name
        content = []
        if text:
            content.append({"type": "text/plain", "value": text})
        if html:
            content.append({"type": "text/html", "value": html})
        return {
            "personalizations": [personalization],
            "from": sender,
            "subject": subject,
            "content": content,
        }

    async def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        text: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
    ) -> dict[str, Any]:
        payload = self._build_payload(to, subject, html, text, cc, bcc)
        try:
            async with self._http_cm() as client:
                response = await client.post(
                    SENDGRID_SEND_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Failed to send email to %s: HTTP %s", to, e.response.status_code)
            raise ActionExecutionException(
                ActionType.SEND_EMAIL.value,
                f"SendGrid rejected the message (HTTP {e.response.status_code})",
                {"recipient": to},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Failed to send email to %s: %s", to, e)
            raise ActionExecutionException(
                ActionType.SEND_EMAIL.value, f"SendGrid request failed: {e}", {"recipient": to}
            ) from e
        logger.info("Email sent successfully to: %s", to)
        return {"message_id": response.headers.get("X-Message-Id")}
