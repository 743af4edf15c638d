"""
Auto-assign condition data models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

Scalar = Union[str, int, float, bool]
ConditionValue = Union[Scalar, List[Scalar], Tuple[Scalar, ...]]


class Operator(str, Enum):
    """Condition operators."""
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    IN = "in"
    NOT_IN = "notIn"
    BETWEEN = "between"


# Operators that are evaluated without a rule value
VALUELESS_OPERATORS = frozenset({Operator.IS_EMPTY, Operator.IS_NOT_EMPTY})


class LogicalOperator(str, Enum):
    """Group combinators."""
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class SingleCondition:
    """Leaf condition comparing one record field against a rule value."""
    field: str
    operator: Operator
    value: Optional[ConditionValue] = None
    second_value: Optional[Scalar] = None


@dataclass(frozen=True)
class ConditionGroup:
    """AND/OR combination of nested conditions."""
    logical_operator: LogicalOperator
    conditions: Tuple["Condition", ...] = ()


Condition = Union[SingleCondition, ConditionGroup]
