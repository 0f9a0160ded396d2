"""SendGrid and Twilio senders against httpx.MockTransport."""

import json

import httpx
import pytest

from fieldflow.core.automation import build_email_sender, build_sms_sender
from fieldflow.core.config import Settings
from fieldflow.domain.exceptions import ActionExecutionException
from fieldflow.infrastructure.services.email_sender import (
    SENDGRID_SEND_URL,
    LogOnlyEmailSender,
    SendGridEmailSender,
)
from fieldflow.infrastructure.services.message_template_renderer import (
    MessageTemplateRenderer,
)
from fieldflow.infrastructure.services.sms_sender import LogOnlySmsSender, TwilioSmsSender


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSendGrid:
    async def test_posts_v3_payload(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202, headers={"X-Message-Id": "sg-123"})

        async with mock_client(handler) as client:
            sender = SendGridEmailSender(
                "SG.key", "ops@acme.test", from_name="Acme", http_client=client
            )
            result = await sender.send(
                to="dana@example.com",
                subject="Hello",
                html="<p>Hi</p>",
                text="Hi",
                cc=["boss@acme.test"],
            )

        assert result == {"message_id": "sg-123"}
        [request] = requests
        assert str(request.url) == SENDGRID_SEND_URL
        assert request.headers["Authorization"] == "Bearer SG.key"
        body = json.loads(request.content)
        assert body["from"] == {"email": "ops@acme.test", "name": "Acme"}
        assert body["personalizations"] == [
            {"to": [{"email": "dana@example.com"}], "cc": [{"email": "boss@acme.test"}]}
        ]
        assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]

    async def test_rejection_raises_action_error(self) -> None:
        async with mock_client(lambda request: httpx.Response(401)) as client:
            sender = SendGridEmailSender("bad", "ops@acme.test", http_client=client)
            with pytest.raises(ActionExecutionException, match="HTTP 401") as exc_info:
                await sender.send(to="x@y.z", subject="s", html="", text="t")
        assert exc_info.value.details["recipient"] == "x@y.z"

    async def test_transport_error_raises_action_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            sender = SendGridEmailSender("key", "ops@acme.test", http_client=client)
            with pytest.raises(ActionExecutionException, match="SendGrid request failed"):
                await sender.send(to="x@y.z", subject="s", html="h", text="")


class TestTwilio:
    async def test_posts_form_with_basic_auth(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

        async with mock_client(handler) as client:
            sender = TwilioSmsSender("AC1", "secret", "+15550001111", http_client=client)
            result = await sender.send(to="+15550102000", body="On our way")

        assert result == {"message_sid": "SM42", "status": "queued"}
        [request] = requests
        assert request.url.path == "/2010-04-01/Accounts/AC1/Messages.json"
        assert request.headers["Authorization"].startswith("Basic ")
        form = dict(httpx.QueryParams(request.content.decode()))
        assert form == {"To": "+15550102000", "From": "+15550001111", "Body": "On our way"}

    async def test_rejection_raises_action_error(self) -> None:
        async with mock_client(lambda request: httpx.Response(400, json={})) as client:
            sender = TwilioSmsSender("AC1", "secret", "+15550001111", http_client=client)
            with pytest.raises(ActionExecutionException, match="Twilio rejected"):
                await sender.send(to="+15550102000", body="x")


async def test_log_only_senders_simulate_delivery() -> None:
    email = await LogOnlyEmailSender().send(to="a@b.c", subject="s", html="h", text="t")
    sms = await LogOnlySmsSender().send(to="+15550102000", body="hi")
    assert email["simulated"] is True
    assert sms["simulated"] is True


def test_builders_fall_back_to_log_only() -> None:
    settings = Settings(_env_file=None)
    assert isinstance(build_email_sender(settings), LogOnlyEmailSender)
    assert isinstance(build_sms_sender(settings), LogOnlySmsSender)


def test_builders_use_providers_when_configured() -> None:
    settings = Settings(
        _env_file=None,
        sendgrid_api_key="SG.key",
        sendgrid_from_email="ops@acme.test",
        twilio_account_sid="AC1",
        twilio_auth_token="secret",
        twilio_from_number="+15550001111",
    )
    assert isinstance(build_email_sender(settings), SendGridEmailSender)
    assert isinstance(build_sms_sender(settings), TwilioSmsSender)


class TestMessageTemplateRenderer:
    def test_render_string(self) -> None:
        renderer = MessageTemplateRenderer()
        assert renderer.render_string("Hi {{name}}", {"name": "Sam"}) == "Hi Sam"
        assert renderer.render_string("Hi {{missing}}!", {}) == "Hi !"
        assert renderer.render_string(None, {"name": "Sam"}) == ""

    def test_no_html_escaping(self) -> None:
        renderer = MessageTemplateRenderer()
        assert renderer.render_string("{{v}}", {"v": "<b>&</b>"}) == "<b>&</b>"

    def test_default_templates(self) -> None:
        renderer = MessageTemplateRenderer()
        assert renderer.email_template_ids() == [
            "invoice_overdue_reminder",
            "job_completed_survey",
            "quote_followup_3_days",
        ]
        assert renderer.sms_template_ids() == [
            "crew_on_the_way",
            "job_reminder",
            "payment_reminder",
            "quote_sent",
        ]
        template = renderer.get_email_template("job_completed_survey")
        assert set(template) == {"subject", "body_html", "body_text"}
        assert renderer.get_email_template("nope") is None
        assert renderer.get_sms_template("nope") is None

    def test_custom_templates_replace_defaults(self) -> None:
        renderer = MessageTemplateRenderer(
            email_templates={"welcome": ("Welcome", "<p>Hi</p>", "Hi")},
            sms_templates={"ping": "Ping {{customer_name}}"},
        )
        assert renderer.email_template_ids() == ["welcome"]
        assert renderer.get_sms_template("ping") == "Ping {{customer_name}}"
