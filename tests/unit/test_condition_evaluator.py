"""Trigger condition evaluation."""

import random

import pytest

from fieldflow.application.services.condition_evaluator import (
    MISSING,
    evaluate_all,
    evaluate_condition,
    get_nested_value,
)
from fieldflow.domain.entities.workflow import Condition
from fieldflow.domain.enums import ConditionOperator


def _cond(field: str, operator: str, value=None) -> Condition:
    return Condition.from_dict({"field": field, "operator": operator, "value": value})


class TestNumericComparisons:
    def test_threshold_boundaries(self) -> None:
        condition = _cond("amount", ">=", 1000)
        assert evaluate_condition(condition, {"amount": 1000}) is True
        assert evaluate_condition(condition, {"amount": 999.99}) is False
        assert evaluate_condition(condition, {}) is False

    def test_numeric_strings_are_coerced(self) -> None:
        assert evaluate_condition(_cond("amount", ">", "10"), {"amount": "10.5"}) is True
        assert evaluate_condition(_cond("amount", "<", 5), {"amount": "abc"}) is False

    def test_word_aliases(self) -> None:
        assert evaluate_condition(_cond("n", "greater_than_or_equal", 3), {"n": 3}) is True
        assert evaluate_condition(_cond("n", "lt", 3), {"n": 2}) is True
        assert evaluate_condition(_cond("n", "less_than_or_equals", 3), {"n": 4}) is False

    def test_matches_float_comparison_for_random_inputs(self) -> None:
        rng = random.Random(20260101)
        checks = {
            ">": lambda a, b: a > b,
            ">=": lambda a, b: a >= b,
            "<": lambda a, b: a < b,
            "<=": lambda a, b: a <= b,
        }
        for _ in range(1500):
            op = rng.choice(list(checks))
            left = round(rng.uniform(-5000, 5000), rng.choice([0, 2]))
            right = rng.choice([left, round(rng.uniform(-5000, 5000), 2)])
            as_text = rng.random() < 0.3
            data = {"value": str(left) if as_text else left}
            assert evaluate_condition(_cond("value", op, right), data) is checks[op](left, right)


class TestEquality:
    def test_loose_equality_ignores_case_and_type(self) -> None:
        assert evaluate_condition(_cond("status", "==", "SENT"), {"status": "sent"}) is True
        assert evaluate_condition(_cond("count", "equals", "5"), {"count": 5}) is True
        assert evaluate_condition(_cond("status", "!=", "paid"), {"status": "Paid"}) is False

    def test_strict_equality_checks_type(self) -> None:
        assert evaluate_condition(_cond("count", "===", 5), {"count": 5}) is True
        assert evaluate_condition(_cond("count", "===", "5"), {"count": 5}) is False
        assert evaluate_condition(_cond("flag", "strict_equals", 1), {"flag": True}) is False

    def test_none_equals_only_none(self) -> None:
        assert evaluate_condition(_cond("x", "==", None), {"x": None}) is True
        assert evaluate_condition(_cond("x", "==", None), {"x": ""}) is False


class TestTextAndMembership:
    def test_contains_family_is_case_insensitive(self) -> None:
        data = {"notes": "Customer wants a Callback"}
        assert evaluate_condition(_cond("notes", "contains", "callback"), data) is True
        assert evaluate_condition(_cond("notes", "not_contains", "refund"), data) is True
        assert evaluate_condition(_cond("notes", "starts_with", "customer"), data) is True
        assert evaluate_condition(_cond("notes", "ends_with", "CALLBACK"), data) is True

    def test_in_accepts_list_or_comma_separated_string(self) -> None:
        data = {"stage": "Qualified"}
        assert evaluate_condition(_cond("stage", "in", ["new", "qualified"]), data) is True
        assert evaluate_condition(_cond("stage", "in", "new, qualified"), data) is True
        assert evaluate_condition(_cond("stage", "not_in", "won,lost"), data) is True

    def test_emptiness(self) -> None:
        for empty in (None, "", []):
            assert evaluate_condition(_cond("x", "is_empty"), {"x": empty}) is True
            assert evaluate_condition(_cond("x", "is_not_empty"), {"x": empty}) is False
        assert evaluate_condition(_cond("x", "is_empty"), {}) is True
        assert evaluate_condition(_cond("x", "is_not_empty"), {"x": 0}) is True


class TestMissingFields:
    @pytest.mark.parametrize(
        "operator",
        ["==", "===", ">", ">=", "<", "<=", "contains", "starts_with", "ends_with", "in"],
    )
    def test_missing_field_fails(self, operator: str) -> None:
        assert evaluate_condition(_cond("absent", operator, 1), {"present": 1}) is False

    @pytest.mark.parametrize("operator", ["!=", "not_contains", "not_in"])
    def test_missing_field_satisfies_negations(self, operator: str) -> None:
        assert evaluate_condition(_cond("absent", operator, 1), {}) is True

    def test_dotted_paths(self) -> None:
        data = {"customer": {"address": {"city": "Austin"}}, "items": [{"sku": "A1"}]}
        assert get_nested_value(data, "customer.address.city") == "Austin"
        assert get_nested_value(data, "items.0.sku") == "A1"
        assert get_nested_value(data, "customer.phone") is MISSING
        assert get_nested_value(data, "customer.address.city.zip") is MISSING


def test_evaluate_all_is_a_conjunction() -> None:
    conditions = [_cond("a", ">", 1), _cond("b", "==", "x")]
    assert evaluate_all(conditions, {"a": 2, "b": "X"}) is True
    assert evaluate_all(conditions, {"a": 2, "b": "y"}) is False
    assert evaluate_all([], {}) is True


def test_unknown_operator_rejected_at_parse() -> None:
    with pytest.raises(ValueError):
        _cond("a", "roughly", 1)
    assert ConditionOperator.from_raw("GTE") is ConditionOperator.GREATER_THAN_OR_EQUAL
