import pytest

from wabot_flow.models.flow_data import FlowCondition
from wabot_flow.services.condition_evaluation_service import ConditionEvaluationService


@pytest.fixture
def service(log_util):
    return ConditionEvaluationService(log_util=log_util)


def condition(operator: str, value: str = "", next_node: str = "2") -> FlowCondition:
    return FlowCondition(operator=operator, value=value, next_node=next_node)


@pytest.mark.parametrize("operator, value, reply, expected", [
    ("Equal", "yes", "  YES ", True),
    ("Equal", "yes", "yes please", False),
    ("NotEqual", "yes", "no", True),
    ("Contains", "price", "What is the PRICE?", True),
    ("NotContains", "price", "hello", True),
    ("StartsWith", "hi", "Hi there", True),
    ("EndsWith", "thanks", "ok thanks", True),
    ("Regex", r"^\d{5}$", "12345", True),
    ("Regex", r"^\d{5}$", "1234", False),
    ("GreaterThan", "10", "10.5", True),
    ("LessThan", "10", "11", False),
    ("Any", "", "whatever", True),
])
def test_operators(service, operator, value, reply, expected):
    assert service.evaluate(condition(operator, value), reply) is expected


def test_numeric_operator_with_text_reply_does_not_match(service):
    assert service.evaluate(condition("GreaterThan", "5"), "five") is False


def test_invalid_regex_does_not_match(service):
    assert service.evaluate(condition("Regex", "(unclosed"), "(unclosed") is False


@pytest.mark.parametrize("pattern", [r"^(a+)+$", r"(\w*\s?)*done", r"(x+){2,}"])
def test_nested_quantifiers_are_not_run(service, pattern):
    assert service.evaluate(condition("Regex", pattern), "a" * 30 + "!") is False


def test_overlong_regex_is_not_run(service):
    assert service.evaluate(condition("Regex", "a" * 201), "a" * 201) is False


def test_overlong_reply_is_not_matched_against_regex(service):
    assert service.evaluate(condition("Regex", "hello"), "hello " + "x" * 1000) is False
    assert service.evaluate(condition("Regex", r"^(\+\d{1,3})?\d+$"), "+5511999990000") is True


def test_unknown_operator_does_not_match(service):
    assert service.evaluate(condition("Eval", "__import__('os')"), "anything") is False


def test_missing_reply_is_treated_as_empty_text(service):
    assert service.evaluate(condition("Equal", ""), None) is True
    assert service.evaluate(condition("Contains", "x"), None) is False


def test_first_matching_condition_wins(service):
    conditions = [
        condition("Contains", "order", next_node="orders"),
        condition("Contains", "order status", next_node="status"),
        condition("Any", next_node="fallback"),
    ]

    matched = service.find_matching_condition(conditions, "order status please")

    assert matched.next_node == "orders"


def test_no_condition_matches(service):
    assert service.find_matching_condition([condition("Equal", "yes")], "no") is None
