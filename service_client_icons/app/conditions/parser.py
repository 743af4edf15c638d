"""
Parsing and validation of stored auto-assign conditions.

Conditions are persisted as JSON in the camelCase shape used by the web
client::

    {"field": "vatStatus", "operator": "equals", "value": "VAT_MONTHLY"}
    {"logicalOperator": "and", "conditions": [...]}

This module is the validation boundary: malformed rules raise
ConditionValidationError here, at authoring or load time, so the
evaluator only ever sees well-formed trees.
"""

import json
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr,
    ValidationError, field_validator, model_validator
)

from shared.config import get_config
from shared.errors import ConditionValidationError
from .models import (
    VALUELESS_OPERATORS, Condition, ConditionGroup, LogicalOperator, Operator,
    SingleCondition
)

ScalarPayload = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


class SingleConditionPayload(BaseModel):
    """Wire shape of a single condition."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Stable key used by the condition builder")
    field: StrictStr = Field(..., min_length=1, description="Dot-path of the client field")
    operator: Operator = Field(..., description="Comparison operator")
    value: Optional[Union[ScalarPayload, List[ScalarPayload]]] = Field(None, description="Rule value")
    second_value: Optional[ScalarPayload] = Field(
        None, alias="secondValue", description="Upper bound for between"
    )

    @model_validator(mode="after")
    def check_operands(self) -> "SingleConditionPayload":
        if self.operator in VALUELESS_OPERATORS:
            return self
        if self.value is None:
            raise ValueError(f"operator '{self.operator.value}' requires a value")
        if self.operator == Operator.BETWEEN:
            if self.second_value is None:
                raise ValueError("operator 'between' requires secondValue")
            if isinstance(self.value, list):
                raise ValueError("operator 'between' takes scalar bounds")
        return self


class ConditionGroupPayload(BaseModel):
    """Wire shape of a group header; children are parsed recursively."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    logical_operator: LogicalOperator = Field(..., alias="logicalOperator")
    conditions: List[Any] = Field(default_factory=list)

    @field_validator("logical_operator", mode="before")
    @classmethod
    def normalize_logical_operator(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


def is_group_payload(payload: Mapping) -> bool:
    """A payload is a group when it carries both logicalOperator and conditions."""
    return "logicalOperator" in payload and "conditions" in payload


def _simplify_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors(include_url=False)
    ]


class ConditionParser:
    """Builds condition trees from stored payloads, enforcing authoring limits."""

    def __init__(self, max_depth: Optional[int] = None, max_group_size: Optional[int] = None):
        config = get_config()
        self.max_depth = max_depth if max_depth is not None else config.max_condition_depth
        self.max_group_size = max_group_size if max_group_size is not None else config.max_group_size

    def parse(self, payload: Any) -> Optional[Condition]:
        """Parse a payload (mapping or JSON text) into a condition; None stays None."""
        if payload is None:
            return None
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ConditionValidationError(
                    "Condition is not valid JSON", {"error": str(e)}
                ) from e
            if payload is None:
                return None
        return self._parse_node(payload, path="$", depth=1)

    def _parse_node(self, payload: Any, path: str, depth: int) -> Condition:
        if depth > self.max_depth:
            raise ConditionValidationError(
                f"Condition nesting exceeds {self.max_depth} levels",
                {"path": path, "max_depth": self.max_depth}
            )
        if not isinstance(payload, Mapping):
            raise ConditionValidationError(
                "Condition must be an object",
                {"path": path, "received": type(payload).__name__}
            )

        if is_group_payload(payload):
            return self._parse_group(payload, path, depth)
        return self._parse_single(payload, path)

    def _parse_group(self, payload: Mapping, path: str, depth: int) -> ConditionGroup:
        try:
            header = ConditionGroupPayload.model_validate(payload)
        except ValidationError as e:
            raise ConditionValidationError(
                "Invalid condition group", {"path": path, "errors": _simplify_errors(e)}
            ) from e

        if len(header.conditions) > self.max_group_size:
            raise ConditionValidationError(
                f"Condition group exceeds {self.max_group_size} entries",
                {"path": path, "max_group_size": self.max_group_size}
            )

        children = tuple(
            self._parse_node(child, f"{path}.conditions[{index}]", depth + 1)
            for index, child in enumerate(header.conditions)
        )
        return ConditionGroup(logical_operator=header.logical_operator, conditions=children)

    def _parse_single(self, payload: Mapping, path: str) -> SingleCondition:
        try:
            single = SingleConditionPayload.model_validate(payload)
        except ValidationError as e:
            raise ConditionValidationError(
                "Invalid condition", {"path": path, "errors": _simplify_errors(e)}
            ) from e

        value = single.value
        if isinstance(value, list):
            value = tuple(value)
        return SingleCondition(
            field=single.field,
            operator=single.operator,
            value=value,
            second_value=single.second_value,
        )


def parse_condition(payload: Any) -> Optional[Condition]:
    """Parse a stored condition with the configured limits."""
    return ConditionParser().parse(payload)


def condition_to_dict(condition: Optional[Condition]) -> Optional[Dict[str, Any]]:
    """Serialize a condition tree back to its stored JSON shape."""
    if condition is None:
        return None
    if isinstance(condition, ConditionGroup):
        return {
            "logicalOperator": condition.logical_operator.value,
            "conditions": [condition_to_dict(child) for child in condition.conditions],
        }
    data: Dict[str, Any] = {"field": condition.field, "operator": condition.operator.value}
    if condition.value is not None:
        data["value"] = list(condition.value) if isinstance(condition.value, tuple) else condition.value
    if condition.second_value is not None:
        data["secondValue"] = condition.second_value
    return data
