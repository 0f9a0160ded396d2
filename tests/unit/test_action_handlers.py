"""Built-in action handlers over in-memory ports."""

from datetime import UTC, datetime, timedelta

import pytest

from fieldflow.application.actions import ActionContext, ActionHandler, ActionRegistry
from fieldflow.application.actions.notify import (
    format_address,
    format_currency,
    format_currency_short,
    format_date_long,
    format_date_short,
    format_phone_number,
)
from fieldflow.core.automation import AutomationRuntime
from fieldflow.domain.exceptions import ActionExecutionException
from fieldflow.shared.utils.datetime import utc_now
from tests.fakes import (
    InMemoryAutomationStore,
    InMemoryEntityGateway,
    RecordingEmailSender,
    RecordingSmsSender,
)


@pytest.fixture
def registry(runtime: AutomationRuntime) -> ActionRegistry:
    return runtime.registry


async def run_action(
    registry: ActionRegistry, action_type: str, config: dict, trigger: dict
) -> dict:
    parsed = registry.validate_config(action_type, config)
    context = ActionContext(
        workflow_id="wf-1", execution_id="exec-1", action_id="act-1", trigger=trigger
    )
    return await registry.get(action_type).execute(parsed, context)


def test_default_registry_has_seven_handlers(registry: ActionRegistry) -> None:
    assert registry.action_types() == [
        "create_invoice",
        "create_reminder",
        "create_task",
        "send_email",
        "send_sms",
        "update_job_status",
        "update_lead_stage",
    ]
    assert "send_email" in registry
    assert registry.validate_config("launch_rocket", {}) is None


def test_handler_without_execute_cannot_be_built() -> None:
    class Incomplete(ActionHandler):
        action_type = "incomplete"

    with pytest.raises(TypeError, match="execute"):
        Incomplete()


@pytest.mark.parametrize(
    ("action_type", "config"),
    [
        ("create_task", {}),
        ("create_task", {"title": ""}),
        ("update_lead_stage", {}),
        ("create_invoice", {"due_in_days": -1}),
        ("create_reminder", {"title": "Call", "remind_in_hours": 0}),
    ],
)
def test_invalid_configs_rejected(
    registry: ActionRegistry, action_type: str, config: dict
) -> None:
    with pytest.raises(ValueError, match=f"{action_type} config invalid"):
        registry.validate_config(action_type, config)


class TestSendEmail:
    async def test_template_rendered_with_entity_variables(
        self, registry: ActionRegistry, email_sender: RecordingEmailSender
    ) -> None:
        output = await run_action(
            registry,
            "send_email",
            {"template_id": "invoice_overdue_reminder", "cc": "a@example.com, b@example.com"},
            {
                "entity_type": "invoice",
                "entity_id": "inv-77",
                "entity_data": {
                    "id": "inv-77",
                    "invoice_number": "INV-1001",
                    "total_amount": 1250,
                    "due_date": "2026-01-05",
                    "customer_name": "Dana Park",
                    "email": "dana@example.com",
                },
            },
        )

        [sent] = email_sender.sent
        assert sent["to"] == "dana@example.com"
        assert sent["subject"] == "Payment Reminder: Invoice INV-1001 is overdue"
        assert "$1,250.00" in sent["html"]
        assert "Monday, January 5, 2026" in sent["text"]
        assert "https://app.example.com/invoices/inv-77/pay" in sent["html"]
        assert "Acme Landscaping" in sent["text"]
        assert sent["cc"] == ["a@example.com", "b@example.com"]
        assert output == {
            "recipient": "dana@example.com",
            "subject": sent["subject"],
            "message_id": "msg-1",
        }

    async def test_inline_subject_and_body(
        self, registry: ActionRegistry, email_sender: RecordingEmailSender
    ) -> None:
        await run_action(
            registry,
            "send_email",
            {
                "subject": "Quote {{quote_number}}",
                "body": "Total {{quote_amount}}",
                "to": "x@y.z",
            },
            {"entity_type": "quote", "entity_data": {"id": "q-12345678", "amount": "980.5"}},
        )
        sent = email_sender.sent[0]
        assert sent["subject"] == "Quote q-123456"
        assert sent["text"] == "Total $980.50"

    async def test_missing_recipient_fails(
        self, registry: ActionRegistry, email_sender: RecordingEmailSender
    ) -> None:
        with pytest.raises(ActionExecutionException, match="No recipient email address"):
            await run_action(
                registry, "send_email", {"subject": "Hi", "body": "There"}, {"entity_data": {}}
            )
        assert email_sender.sent == []

    async def test_empty_message_fails(self, registry: ActionRegistry) -> None:
        with pytest.raises(ActionExecutionException, match="neither subject nor body"):
            await run_action(
                registry,
                "send_email",
                {"template_id": "no_such_template", "to": "x@y.z"},
                {"entity_data": {}},
            )


class TestSendSms:
    async def test_template_and_phone_normalization(
        self, registry: ActionRegistry, sms_sender: RecordingSmsSender
    ) -> None:
        output = await run_action(
            registry,
            "send_sms",
            {"template_id": "quote_sent"},
            {
                "entity_type": "quote",
                "entity_data": {"id": "q-1", "first_name": "Sam", "phone": "(555) 010-7788"},
            },
        )
        [sent] = sms_sender.sent
        assert sent["to"] == "+15550107788"
        assert sent["body"] == (
            "Hi Sam! Your quote from Acme Landscaping is ready. "
            "View it here: https://app.example.com/quotes/q-1"
        )
        assert output["message_sid"] == "SM1"
        assert output["recipient"] == "+15550107788"

    async def test_crew_on_the_way_defaults(
        self, registry: ActionRegistry, sms_sender: RecordingSmsSender
    ) -> None:
        await run_action(
            registry,
            "send_sms",
            {"template_id": "crew_on_the_way", "to": "5550101234"},
            {"entity_type": "job", "entity_data": {"id": "job-1"}},
        )
        assert "your property" in sms_sender.sent[0]["body"]
        assert "ETA: soon" in sms_sender.sent[0]["body"]

    async def test_missing_phone_fails(self, registry: ActionRegistry) -> None:
        with pytest.raises(ActionExecutionException, match="No recipient phone number"):
            await run_action(registry, "send_sms", {"message": "Hello"}, {"entity_data": {}})

    async def test_empty_message_fails(self, registry: ActionRegistry) -> None:
        with pytest.raises(ActionExecutionException, match="SMS message is empty"):
            await run_action(
                registry, "send_sms", {"template_id": "missing", "to": "5550101234"}, {}
            )


class TestFollowUps:
    async def test_create_task(
        self, registry: ActionRegistry, store: InMemoryAutomationStore
    ) -> None:
        before = utc_now()
        output = await run_action(
            registry,
            "create_task",
            {
                "title": "Call customer",
                "due_in_days": 2,
                "assign_to": "user-3",
                "priority": "high",
            },
            {"entity_type": "quote", "entity_id": "q-9"},
        )
        [task] = store.follow_ups
        assert task.kind == "task"
        assert (task.entity_type, task.entity_id) == ("quote", "q-9")
        assert (task.workflow_id, task.execution_id) == ("wf-1", "exec-1")
        assert task.due_at - before >= timedelta(days=2)
        assert output["task_id"] == task.id
        assert output["priority"] == "high"

    async def test_reminder_precedence(
        self, registry: ActionRegistry, store: InMemoryAutomationStore
    ) -> None:
        at = datetime(2026, 5, 1, 15, 30, tzinfo=UTC)
        await run_action(
            registry,
            "create_reminder",
            {"title": "Follow up", "remind_at": at.isoformat(), "remind_in_hours": 2},
            {},
        )
        before = utc_now()
        await run_action(
            registry, "create_reminder", {"title": "Soon", "remind_in_hours": 2}, {}
        )
        await run_action(registry, "create_reminder", {"title": "Default"}, {})

        fixed, hours, default = store.follow_ups
        assert fixed.due_at == at
        assert timedelta(hours=2) <= hours.due_at - before < timedelta(hours=2, minutes=1)
        assert timedelta(days=1) <= default.due_at - before < timedelta(days=1, minutes=1)
        assert {f.kind for f in store.follow_ups} == {"reminder"}


class TestRecordUpdates:
    async def test_update_lead_stage(
        self, registry: ActionRegistry, gateway: InMemoryEntityGateway
    ) -> None:
        gateway.put("lead", {"id": "lead-1", "stage": "new"})
        output = await run_action(
            registry,
            "update_lead_stage",
            {"new_stage": "contacted"},
            {"entity_type": "lead", "entity_data": {"id": "lead-1"}},
        )
        assert output == {"lead_id": "lead-1", "new_stage": "contacted"}
        assert gateway.tables["lead"]["lead-1"]["stage"] == "contacted"

    async def test_update_lead_stage_unknown_lead(self, registry: ActionRegistry) -> None:
        with pytest.raises(ActionExecutionException, match="Lead not found: lead-404"):
            await run_action(
                registry, "update_lead_stage", {"new_stage": "won"}, {"entity_id": "lead-404"}
            )

    async def test_update_lead_stage_without_entity(self, registry: ActionRegistry) -> None:
        with pytest.raises(ActionExecutionException, match="Lead ID not found"):
            await run_action(registry, "update_lead_stage", {"new_stage": "won"}, {})

    async def test_update_job_status_writes_directly(
        self, registry: ActionRegistry, gateway: InMemoryEntityGateway
    ) -> None:
        gateway.put("job", {"id": "job-1", "status": "draft"})
        await run_action(
            registry, "update_job_status", {"new_status": "paid"}, {"entity_id": "job-1"}
        )
        assert gateway.tables["job"]["job-1"]["status"] == "paid"

    async def test_create_invoice_sums_line_items(
        self, registry: ActionRegistry, gateway: InMemoryEntityGateway
    ) -> None:
        output = await run_action(
            registry,
            "create_invoice",
            {
                "due_in_days": 15,
                "line_items": [
                    {"description": "Mulch", "quantity": 4, "unit_price": 35},
                    {"description": "Labor", "unit_price": 120},
                ],
            },
            {"entity_type": "job", "entity_data": {"id": "job-5", "client_id": "client-2"}},
        )
        invoice = gateway.tables["invoice"][output["invoice_id"]]
        assert output["amount"] == 260
        assert invoice["status"] == "Draft"
        assert (invoice["job_id"], invoice["client_id"]) == ("job-5", "client-2")
        expected_due = (utc_now() + timedelta(days=15)).date().isoformat()
        assert output["due_date"] == expected_due

    async def test_create_invoice_explicit_amount_wins(self, registry: ActionRegistry) -> None:
        output = await run_action(
            registry,
            "create_invoice",
            {"amount": 99.5, "line_items": [{"quantity": 10, "unit_price": 10}]},
            {"entity_data": {"job_id": "job-6"}},
        )
        assert output["amount"] == 99.5
        assert output["job_id"] == "job-6"


class TestFormatting:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [(1234.5, "$1,234.50"), ("75", "$75.00"), (None, "$0.00"), ("n/a", "$0.00")],
    )
    def test_format_currency(self, amount, expected: str) -> None:
        assert format_currency(amount) == expected

    def test_format_currency_short(self) -> None:
        assert format_currency_short(1234.4) == "$1,234"
        assert format_currency_short(None) == "$0"

    def test_dates(self) -> None:
        assert format_date_long("2026-01-05") == "Monday, January 5, 2026"
        assert format_date_short("2026-01-05T14:00:00Z") == "Mon, Jan 5"
        assert format_date_long("not a date") == ""
        assert format_date_short(None) == ""

    def test_format_address(self) -> None:
        assert (
            format_address({"address_line1": "12 Elm St", "city": "Salem", "zip_code": "97301"})
            == "12 Elm St, Salem, 97301"
        )
        assert format_address({}) == ""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("(555) 010-2000", "+15550102000"),
            ("1-555-010-2000", "+15550102000"),
            ("+44 20 7946 0958", "+442079460958"),
            ("", None),
            ("ext.", None),
            (None, None),
        ],
    )
    def test_format_phone_number(self, raw, expected) -> None:
        assert format_phone_number(raw) == expected
