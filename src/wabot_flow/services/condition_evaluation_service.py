"""
Condition Evaluation Service
Evaluates declarative condition branches (operator + value) against the user's reply.
"""
import re
from typing import Optional, List

from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.models.flow_data import FlowCondition

# Patterns come from flow authors and run on the event loop
MAX_REGEX_PATTERN_LENGTH = 200
MAX_REGEX_INPUT_LENGTH = 1000
# A quantified group that itself holds a quantifier, e.g. (a+)+ or (\w*)*
NESTED_QUANTIFIER = re.compile(r"\([^()]*[+*}][^()]*\)\s*[+*{]")


def regex_rejection_reason(pattern: str) -> Optional[str]:
    """
    Why a Regex condition pattern is refused, or None when it may run
    """
    if len(pattern) > MAX_REGEX_PATTERN_LENGTH:
        return f"pattern longer than {MAX_REGEX_PATTERN_LENGTH} characters"
    if NESTED_QUANTIFIER.search(pattern):
        return "nested quantifiers"
    return None


class ConditionEvaluationService:
    """
    Compares the incoming message text with condition values.
    Text operators are case-insensitive and ignore surrounding whitespace.
    """

    def __init__(self, log_util: LogUtil):
        self.log_util = log_util

    def evaluate(self, condition: FlowCondition, user_reply: Optional[str]) -> bool:
        actual_value_str = (user_reply or "").strip()
        expected_value_str = (condition.value or "").strip()
        actual = actual_value_str.lower()
        expected = expected_value_str.lower()
        operator = condition.operator

        if operator == "Equal":
            condition_met = actual == expected
        elif operator == "NotEqual":
            condition_met = actual != expected
        elif operator == "Contains":
            condition_met = expected in actual
        elif operator == "NotContains":
            condition_met = expected not in actual
        elif operator == "StartsWith":
            condition_met = actual.startswith(expected)
        elif operator == "EndsWith":
            condition_met = actual.endswith(expected)
        elif operator == "Regex":
            rejection = regex_rejection_reason(expected_value_str)
            if rejection is None and len(actual_value_str) > MAX_REGEX_INPUT_LENGTH:
                rejection = f"reply longer than {MAX_REGEX_INPUT_LENGTH} characters"
            if rejection is not None:
                condition_met = False
                self.log_util.warning(
                    service_name="ConditionEvaluationService",
                    message=f"Regex '{expected_value_str[:50]}' not evaluated: {rejection}"
                )
            else:
                try:
                    condition_met = re.search(expected_value_str, actual_value_str, re.IGNORECASE) is not None
                except re.error as e:
                    condition_met = False
                    self.log_util.warning(
                        service_name="ConditionEvaluationService",
                        message=f"Invalid regex '{expected_value_str}': {str(e)}"
                    )
        elif operator in ("GreaterThan", "LessThan"):
            try:
                actual_number = float(actual_value_str)
                expected_number = float(expected_value_str)
            except (ValueError, TypeError) as e:
                condition_met = False
                self.log_util.warning(
                    service_name="ConditionEvaluationService",
                    message=f"{operator} comparison failed (non-numeric values): actual='{actual_value_str}', expected='{expected_value_str}', error={str(e)}"
                )
            else:
                if operator == "GreaterThan":
                    condition_met = actual_number > expected_number
                else:
                    condition_met = actual_number < expected_number
        elif operator == "Any":
            condition_met = True
        else:
            self.log_util.warning(
                service_name="ConditionEvaluationService",
                message=f"Unknown condition operator: '{operator}', defaulting to False"
            )
            condition_met = False

        self.log_util.debug(
            service_name="ConditionEvaluationService",
            message=f"{operator}: actual='{actual_value_str}', expected='{expected_value_str}' -> {condition_met}"
        )
        return condition_met

    def find_matching_condition(self, conditions: List[FlowCondition], user_reply: Optional[str]) -> Optional[FlowCondition]:
        """
        First condition, in declaration order, that matches the reply
        """
        for condition in conditions:
            if self.evaluate(condition, user_reply):
                return condition
        return None
