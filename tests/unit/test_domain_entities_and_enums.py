"""Tests for domain entities (WorkflowDefinition, Trigger, Condition) and enums."""

from datetime import UTC, datetime

import pytest

from fieldflow.domain.entities.workflow import Condition, Trigger
from fieldflow.domain.enums import ConditionOperator, JobState
from fieldflow.shared.enums import ActionType, BusinessEventType, EntityType, ExecutionStatus
from tests.fakes import make_workflow


class TestEnums:
    """Enum values and the .values() helper."""

    def test_business_event_types(self) -> None:
        got = BusinessEventType.values()
        assert len(got) == 15
        assert "invoice_overdue" in got
        assert "lead_stage_changed" in got

    def test_action_types(self) -> None:
        assert len(ActionType.values()) == 7

    def test_execution_status(self) -> None:
        assert ExecutionStatus.values() == [
            "pending",
            "running",
            "completed",
            "failed",
            "skipped",
            "scheduled",
        ]

    def test_job_states(self) -> None:
        assert JobState.values()[0] == "draft"
        assert len(JobState.values()) == 10

    @pytest.mark.parametrize(
        ("event_type", "entity_type"),
        [
            ("quote_not_responded", EntityType.QUOTE),
            ("job_weather_hold", EntityType.JOB),
            ("invoice_paid", EntityType.INVOICE),
            ("lead_created", EntityType.LEAD),
            ("crew_clocked_in", EntityType.UNKNOWN),
            ("", EntityType.UNKNOWN),
        ],
    )
    def test_entity_type_for_event(self, event_type: str, entity_type: EntityType) -> None:
        assert EntityType.for_event(event_type) is entity_type

    @pytest.mark.parametrize(
        ("raw", "operator"),
        [
            ("gte", ConditionOperator.GREATER_THAN_OR_EQUAL),
            (" EQUALS ", ConditionOperator.EQUALS),
            ("!==", ConditionOperator.NOT_EQUALS),
            ("contains", ConditionOperator.CONTAINS),
        ],
    )
    def test_operator_aliases(self, raw: str, operator: ConditionOperator) -> None:
        assert ConditionOperator.from_raw(raw) is operator

    def test_unknown_operator(self) -> None:
        with pytest.raises(ValueError):
            ConditionOperator.from_raw("roughly")


class TestCondition:
    def test_from_dict(self) -> None:
        condition = Condition.from_dict({"field": "days_overdue", "operator": ">=", "value": 7})
        assert condition == Condition("days_overdue", ConditionOperator.GREATER_THAN_OR_EQUAL, 7)

    @pytest.mark.parametrize(
        "raw",
        [
            "not a dict",
            {"operator": "=="},
            {"field": "", "operator": "=="},
            {"field": "x", "operator": "~"},
        ],
    )
    def test_malformed(self, raw) -> None:
        with pytest.raises(ValueError):
            Condition.from_dict(raw)


class TestTrigger:
    def test_schedule_config(self) -> None:
        trigger = Trigger(
            id="t1",
            workflow_id="wf-1",
            trigger_type="schedule",
            config={"cron": "0 9 * * 1", "timezone": "America/Chicago"},
        )
        assert trigger.is_schedule
        assert trigger.cron_expression == "0 9 * * 1"
        assert trigger.timezone == "America/Chicago"

    def test_defaults(self) -> None:
        trigger = Trigger(id="t1", workflow_id="wf-1", trigger_type="quote_sent")
        assert not trigger.is_schedule
        assert trigger.cron_expression is None
        assert trigger.timezone == "UTC"
        assert trigger.parse_conditions() == []

    def test_conditions_must_be_a_list(self) -> None:
        trigger = Trigger(
            id="t1", workflow_id="wf-1", trigger_type="quote_sent", conditions={"field": "x"}
        )
        with pytest.raises(ValueError, match="conditions must be a list"):
            trigger.parse_conditions()


class TestWorkflowDefinition:
    def test_runnable(self) -> None:
        assert make_workflow().is_runnable
        assert not make_workflow(is_active=False).is_runnable
        assert not make_workflow(deleted_at=datetime(2026, 1, 1, tzinfo=UTC)).is_runnable

    def test_ordering_uses_order_not_position(self) -> None:
        workflow = make_workflow(
            actions=[
                {"id": "c", "action_type": "create_task", "order": 3},
                {"id": "a", "action_type": "send_email", "order": 1},
                {"id": "b", "action_type": "send_sms", "order": 2},
            ],
            triggers=[
                {"id": "t2", "trigger_type": "quote_sent", "order": 2},
                {"id": "t1", "trigger_type": "quote_approved", "order": 1},
            ],
        )
        assert [a.id for a in workflow.ordered_actions()] == ["a", "b", "c"]
        assert [t.id for t in workflow.ordered_triggers()] == ["t1", "t2"]

    def test_find_action_and_trigger_type(self) -> None:
        workflow = make_workflow(
            triggers=[{"trigger_type": "job_completed"}],
            actions=[{"id": "a1", "action_type": "send_email"}],
        )
        assert workflow.find_action("a1").action_type == "send_email"
        assert workflow.find_action("zz") is None
        assert workflow.has_trigger_type("job_completed")
        assert not workflow.has_trigger_type("job_started")
