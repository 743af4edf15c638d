"""
Auto-assign conditions package.

Defines the condition tree model and its evaluator. Conditions are nested
AND/OR groups of single field comparisons, stored as JSON on an icon.

Modules of interest:
- models: Closed union of SingleCondition and ConditionGroup.
- parser: Validation boundary from stored JSON to condition trees.
- evaluator: Pure recursive evaluation against a client record.
- records: Uniform record views over client entities.
"""

from .models import (
    Condition, ConditionGroup, LogicalOperator, Operator, SingleCondition
)
from .evaluator import ConditionEvaluator, evaluate
from .parser import ConditionParser, condition_to_dict, parse_condition
from .records import to_record

__all__ = [
    "Condition",
    "ConditionGroup",
    "LogicalOperator",
    "Operator",
    "SingleCondition",
    "ConditionEvaluator",
    "evaluate",
    "ConditionParser",
    "condition_to_dict",
    "parse_condition",
    "to_record",
]
