"""SMS delivery: Twilio REST API over HTTP, or log-only when credentials are missing."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx

from fieldflow.domain.exceptions import ActionExecutionException
from fieldflow.shared.enums import ActionType
from fieldflow.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class LogOnlySmsSender:
    """ISmsSender implementation that logs instead of sending."""

    async def send(self, *, to: str, body: str) -> dict[str, Any]:
        logger.info(
            "SMS provider not configured, logging SMS instead (to=%s, length=%d)",
            to,
            len(body or ""),
        )
        return {"simulated": True, "note": "SMS logged (Twilio not configured)"}


class TwilioSmsSender:
    """ISmsSender backed by Twilio's Messages resource."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        *,
        timeout_seconds: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number
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

    @property
    def messages_url(self) -> str:
        return f"{TWILIO_API_BASE}/Accounts/{self._account_sid}/Messages.json"

    async def send(self, *, to: str, body: str) -> dict[str, Any]:
        try:
            async with self._http_cm() as client:
                response = await client.post(
                    self.messages_url,
                    data={"To": to, "From": self._from_number, "Body": body},
                    auth=(self._account_sid, self._auth_token),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Failed to send SMS to %s: HTTP %s", to, e.response.status_code)
            raise ActionExecutionException(
                ActionType.SEND_SMS.value,
                f"Twilio rejected the message (HTTP {e.response.status_code})",
                {"recipient": to},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Failed to send SMS to %s: %s", to, e)
            raise ActionExecutionException(
                ActionType.SEND_SMS.value, f"Twilio request failed: {e}", {"recipient": to}
            ) from e
        logger.info("SMS sent successfully to: %s, SID: %s", to, data.get("sid"))
        return {"message_sid": data.get("sid"), "status": data.get("status")}
