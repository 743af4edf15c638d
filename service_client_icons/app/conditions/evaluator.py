"""
Condition evaluation for icon auto-assignment.

Evaluation is a pure walk of the condition tree against a read-only record.
It never raises on a structurally valid condition: data that cannot be
compared (missing fields, nulls, non-numeric text for numeric operators)
makes the condition not match.
"""

import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from shared.logging import get_logger
from .models import (
    Condition, ConditionGroup, LogicalOperator, Operator, SingleCondition
)

# Sentinel for a dot-path that does not resolve to anything in the record
MISSING = object()

_SCALAR_TYPES = (str, bytes, int, float, bool, Decimal)
_ARRAY_TYPES = (list, tuple)


def resolve_field(record: Any, path: str) -> Any:
    """Walk a dot-path through nested mappings (or entity attributes).

    Returns MISSING when any segment is absent or an intermediate node is
    None, instead of raising.
    """
    node = record
    for part in path.split("."):
        if node is None or node is MISSING:
            return MISSING
        if isinstance(node, Mapping):
            node = node.get(part, MISSING)
        elif isinstance(node, _SCALAR_TYPES + _ARRAY_TYPES) or part.startswith("_"):
            return MISSING
        else:
            node = getattr(node, part, MISSING)
    return node


def _is_absent(value: Any) -> bool:
    return value is None or value is MISSING


def _is_array(value: Any) -> bool:
    return isinstance(value, _ARRAY_TYPES)


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (True is not 1, "1" is not 1)."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, str) or isinstance(right, str):
        return isinstance(left, str) and isinstance(right, str) and left == right
    return left == right


def _loose_equals(left: Any, right: Any) -> bool:
    """Strict equality, except two strings compare case-insensitively."""
    if isinstance(left, str) and isinstance(right, str):
        return left.lower() == right.lower()
    return _strict_equals(left, right)


def to_number(value: Any) -> Optional[float]:
    """Coerce a field or rule value to a finite float, or None."""
    if isinstance(value, bool) or _is_absent(value):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (int, float, Decimal)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_empty(value: Any) -> bool:
    """None, missing, blank strings and empty arrays count as empty."""
    if _is_absent(value):
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if _is_array(value) and len(value) == 0:
        return True
    return False


class ConditionEvaluator:
    """Evaluates auto-assign conditions against client records."""

    def __init__(self):
        self.logger = get_logger("client_icons.conditions.evaluator")

    def evaluate(self, record: Any, condition: Optional[Condition]) -> bool:
        """Return True if the record satisfies the condition.

        A missing condition never matches.
        """
        if condition is None:
            return False
        if isinstance(condition, ConditionGroup):
            return self._evaluate_group(record, condition)
        if isinstance(condition, SingleCondition):
            return self._evaluate_single(record, condition)
        self.logger.debug("Unsupported condition node", node_type=type(condition).__name__)
        return False

    def _evaluate_group(self, record: Any, group: ConditionGroup) -> bool:
        """Evaluate an AND/OR group with short-circuiting.

        Empty AND groups match and empty OR groups do not.
        """
        results = (self.evaluate(record, child) for child in group.conditions)
        if group.logical_operator == LogicalOperator.AND:
            return all(results)
        if group.logical_operator == LogicalOperator.OR:
            return any(results)
        self.logger.debug("Unknown logical operator", logical_operator=str(group.logical_operator))
        return False

    def _evaluate_single(self, record: Any, condition: SingleCondition) -> bool:
        """Evaluate a single condition."""
        field_value = resolve_field(record, condition.field)
        return self.evaluate_operator(
            field_value,
            condition.operator,
            condition.value,
            condition.second_value
        )

    def evaluate_operator(
        self,
        field_value: Any,
        operator: Any,
        value: Any = None,
        second_value: Any = None
    ) -> bool:
        """Apply one operator to a resolved field value."""
        if operator == Operator.EQUALS:
            if _is_absent(field_value):
                return _is_absent(value)
            return _loose_equals(field_value, value)

        elif operator == Operator.NOT_EQUALS:
            if field_value is MISSING:
                return False
            return not _loose_equals(field_value, value)

        elif operator == Operator.CONTAINS:
            return self._contains(field_value, value)

        elif operator == Operator.NOT_CONTAINS:
            if not (_is_array(field_value) or isinstance(field_value, str)):
                return False
            return not self._contains(field_value, value)

        elif operator in (
            Operator.GREATER_THAN,
            Operator.LESS_THAN,
            Operator.GREATER_THAN_OR_EQUAL,
            Operator.LESS_THAN_OR_EQUAL,
        ):
            return self._compare(field_value, operator, value)

        elif operator == Operator.IS_EMPTY:
            return is_empty(field_value)

        elif operator == Operator.IS_NOT_EMPTY:
            return not is_empty(field_value)

        elif operator == Operator.IN:
            return self._in(field_value, value)

        elif operator == Operator.NOT_IN:
            return not self._in(field_value, value)

        elif operator == Operator.BETWEEN:
            number = to_number(field_value)
            low = to_number(value)
            high = to_number(second_value)
            if number is None or low is None or high is None:
                return False
            return low <= number <= high

        else:
            self.logger.debug("Unknown condition operator", operator=str(operator))
            return False

    @staticmethod
    def _contains(field_value: Any, value: Any) -> bool:
        if _is_array(field_value):
            # Array elements are codes/enums: exact, case-sensitive match
            return any(_strict_equals(item, value) for item in field_value)
        if isinstance(field_value, str):
            if _is_absent(value) or _is_array(value):
                return False
            return _as_text(value).lower() in field_value.lower()
        return False

    @staticmethod
    def _in(field_value: Any, value: Any) -> bool:
        if not _is_array(value):
            return False
        if field_value is MISSING:
            field_value = None
        return any(_strict_equals(field_value, item) for item in value)

    @staticmethod
    def _compare(field_value: Any, operator: Operator, value: Any) -> bool:
        left = to_number(field_value)
        right = to_number(value)
        if left is None or right is None:
            return False
        if operator == Operator.GREATER_THAN:
            return left > right
        if operator == Operator.LESS_THAN:
            return left < right
        if operator == Operator.GREATER_THAN_OR_EQUAL:
            return left >= right
        return left <= right


_default_evaluator = ConditionEvaluator()


def evaluate(record: Any, condition: Optional[Condition]) -> bool:
    """Evaluate a condition with the shared stateless evaluator."""
    return _default_evaluator.evaluate(record, condition)
