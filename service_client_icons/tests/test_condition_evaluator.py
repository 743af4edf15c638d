"""
Unit tests for the auto-assign ConditionEvaluator.
"""

import pytest
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from service_client_icons.app.conditions.evaluator import (
    ConditionEvaluator, evaluate, resolve_field, MISSING
)
from service_client_icons.app.conditions.models import (
    ConditionGroup, LogicalOperator, Operator, SingleCondition
)
from service_client_icons.app.conditions.records import to_record


def single(field_name, operator, value=None, second_value=None):
    return SingleCondition(field=field_name, operator=operator, value=value, second_value=second_value)


def group(logical_operator, *conditions):
    return ConditionGroup(logical_operator=logical_operator, conditions=tuple(conditions))


class VatStatus(str, Enum):
    VAT_MONTHLY = "VAT_MONTHLY"
    VAT_QUARTERLY = "VAT_QUARTERLY"


@dataclass
class ClientEntity:
    id: str
    name: str
    nip: str
    vat_status: VatStatus
    gtu_codes: List[str] = field(default_factory=list)
    phone: Optional[str] = None


class TestConditionEvaluator:
    """Test cases for ConditionEvaluator."""

    @pytest.fixture
    def evaluator(self):
        """Create ConditionEvaluator instance."""
        return ConditionEvaluator()

    @pytest.fixture
    def client(self):
        """Create a client record with various field types."""
        return {
            "id": "test-client-id",
            "name": "Test Company Ltd",
            "nip": "1234567890",
            "email": "test@company.com",
            "phone": "+48123456789",
            "companySpecificity": "Software Development",
            "gtuCode": "GTU_01",
            "gtuCodes": ["GTU_01", "GTU_02", "GTU_03"],
            "employmentType": "DG",
            "vatStatus": "VAT_MONTHLY",
            "zusStatus": "FULL",
            "receiveEmailCopy": True,
            "isActive": True,
            "employees": 12,
            "companyId": "company-123",
            "company": {
                "id": "company-123",
                "name": "Parent Company Inc",
                "settings": {"timezone": "Europe/Warsaw"},
            },
        }

    def test_null_condition_is_false(self, evaluator, client):
        """Test that a missing condition never matches."""
        assert evaluator.evaluate(client, None) is False
        assert evaluator.evaluate({}, None) is False

    def test_equals_string(self, evaluator, client):
        """Test equals on string fields."""
        assert evaluator.evaluate(client, single("name", Operator.EQUALS, "Test Company Ltd")) is True
        assert evaluator.evaluate(client, single("name", Operator.EQUALS, "Other")) is False

    def test_equals_is_case_insensitive(self, evaluator):
        """Test that string equality ignores case."""
        record = {"name": "Test Co"}
        assert evaluator.evaluate(record, single("name", Operator.EQUALS, "test co")) is True
        assert evaluator.evaluate(record, single("name", Operator.NOT_EQUALS, "TEST CO")) is False

    def test_equals_boolean_and_enum(self, evaluator, client):
        """Test equals on boolean and enum-valued fields."""
        assert evaluator.evaluate(client, single("receiveEmailCopy", Operator.EQUALS, True)) is True
        assert evaluator.evaluate(client, single("vatStatus", Operator.EQUALS, "VAT_MONTHLY")) is True

    def test_equals_does_not_coerce_types(self, evaluator):
        """Test strict equality across types."""
        record = {"flag": True, "count": 1, "code": "1"}
        assert evaluator.evaluate(record, single("flag", Operator.EQUALS, 1)) is False
        assert evaluator.evaluate(record, single("count", Operator.EQUALS, True)) is False
        assert evaluator.evaluate(record, single("code", Operator.EQUALS, 1)) is False
        assert evaluator.evaluate(record, single("count", Operator.EQUALS, 1.0)) is True

    def test_equals_empty_string(self, evaluator):
        """Test empty strings compare equal."""
        assert evaluator.evaluate({"phone": ""}, single("phone", Operator.EQUALS, "")) is True

    def test_null_field_never_equals_value(self, evaluator):
        """Test null and missing fields against a non-null rule value."""
        record = {"phone": None}
        assert evaluator.evaluate(record, single("phone", Operator.EQUALS, "+48123456789")) is False
        assert evaluator.evaluate(record, single("missing", Operator.EQUALS, "test")) is False

    def test_not_equals(self, evaluator, client):
        """Test notEquals."""
        assert evaluator.evaluate(client, single("vatStatus", Operator.NOT_EQUALS, "VAT_QUARTERLY")) is True
        assert evaluator.evaluate(client, single("vatStatus", Operator.NOT_EQUALS, "vat_monthly")) is False

    def test_not_equals_null_and_missing_fields(self, evaluator):
        """Test notEquals on null and unresolved fields."""
        record = {"phone": None}
        assert evaluator.evaluate(record, single("phone", Operator.NOT_EQUALS, "X")) is True
        assert evaluator.evaluate(record, single("phone", Operator.NOT_EQUALS, None)) is False
        assert evaluator.evaluate(record, single("missing", Operator.NOT_EQUALS, "X")) is False
        assert evaluator.evaluate(record, single("address.city", Operator.NOT_EQUALS, "X")) is False

    def test_contains_string_is_case_insensitive(self, evaluator, client):
        """Test substring match on strings."""
        assert evaluator.evaluate(client, single("companySpecificity", Operator.CONTAINS, "software")) is True
        assert evaluator.evaluate(client, single("companySpecificity", Operator.CONTAINS, "Retail")) is False

    def test_contains_array_membership(self, evaluator):
        """Test element membership on array fields."""
        record = {"codes": ["A", "B"]}
        assert evaluator.evaluate(record, single("codes", Operator.CONTAINS, "B")) is True
        assert evaluator.evaluate(record, single("codes", Operator.CONTAINS, "Z")) is False

    def test_contains_array_is_case_sensitive(self, evaluator, client):
        """Test that array elements match exactly."""
        assert evaluator.evaluate(client, single("gtuCodes", Operator.CONTAINS, "GTU_02")) is True
        assert evaluator.evaluate(client, single("gtuCodes", Operator.CONTAINS, "gtu_02")) is False

    def test_contains_other_types_is_false(self, evaluator):
        """Test contains and notContains on non-string, non-array fields."""
        record = {"employees": 12, "phone": None}
        assert evaluator.evaluate(record, single("employees", Operator.CONTAINS, "1")) is False
        assert evaluator.evaluate(record, single("employees", Operator.NOT_CONTAINS, "1")) is False
        assert evaluator.evaluate(record, single("phone", Operator.CONTAINS, "123")) is False
        assert evaluator.evaluate(record, single("missing", Operator.NOT_CONTAINS, "123")) is False

    def test_contains_empty_array(self, evaluator):
        """Test contains against an empty array."""
        assert evaluator.evaluate({"gtuCodes": []}, single("gtuCodes", Operator.CONTAINS, "GTU_01")) is False

    def test_not_contains(self, evaluator, client):
        """Test notContains on strings and arrays."""
        assert evaluator.evaluate(client, single("additionalInfo", Operator.NOT_CONTAINS, "x")) is False
        assert evaluator.evaluate(client, single("name", Operator.NOT_CONTAINS, "retail")) is True
        assert evaluator.evaluate(client, single("name", Operator.NOT_CONTAINS, "COMPANY")) is False
        assert evaluator.evaluate(client, single("gtuCodes", Operator.NOT_CONTAINS, "GTU_09")) is True
        assert evaluator.evaluate(client, single("gtuCodes", Operator.NOT_CONTAINS, "GTU_01")) is False

    def test_numeric_comparison_coerces_strings(self, evaluator):
        """Test ordering operators on numeric text such as a NIP."""
        record = {"nip": "9999999999"}
        assert evaluator.evaluate(record, single("nip", Operator.GREATER_THAN, 5000000000)) is True
        assert evaluator.evaluate(record, single("nip", Operator.LESS_THAN, 5000000000)) is False

    @pytest.mark.parametrize("operator,value,expected", [
        (Operator.GREATER_THAN, 11, True),
        (Operator.GREATER_THAN, 12, False),
        (Operator.LESS_THAN, 13, True),
        (Operator.LESS_THAN, 12, False),
        (Operator.GREATER_THAN_OR_EQUAL, 12, True),
        (Operator.GREATER_THAN_OR_EQUAL, 13, False),
        (Operator.LESS_THAN_OR_EQUAL, 12, True),
        (Operator.LESS_THAN_OR_EQUAL, 11, False),
        (Operator.GREATER_THAN, "11.5", True),
    ])
    def test_ordering_operators(self, evaluator, client, operator, value, expected):
        """Test each ordering operator at and around the boundary."""
        assert evaluator.evaluate(client, single("employees", operator, value)) is expected

    def test_numeric_comparison_fails_closed(self, evaluator):
        """Test that non-numeric operands never match."""
        record = {"name": "abc", "blank": "", "flag": True, "phone": None}
        assert evaluator.evaluate(record, single("name", Operator.GREATER_THAN, 0)) is False
        assert evaluator.evaluate(record, single("name", Operator.LESS_THAN, 0)) is False
        assert evaluator.evaluate(record, single("blank", Operator.LESS_THAN_OR_EQUAL, 0)) is False
        assert evaluator.evaluate(record, single("flag", Operator.GREATER_THAN_OR_EQUAL, 0)) is False
        assert evaluator.evaluate(record, single("phone", Operator.LESS_THAN, 10)) is False
        assert evaluator.evaluate(record, single("missing", Operator.GREATER_THAN, -1)) is False
        assert evaluator.evaluate({"n": 5}, single("n", Operator.GREATER_THAN, "many")) is False
        assert evaluator.evaluate({"n": "nan"}, single("n", Operator.LESS_THAN, 10)) is False

    @pytest.mark.parametrize("value", [None, "", "   ", []])
    def test_is_empty_values(self, evaluator, value):
        """Test values that count as empty."""
        record = {"field": value}
        assert evaluator.evaluate(record, single("field", Operator.IS_EMPTY)) is True
        assert evaluator.evaluate(record, single("field", Operator.IS_NOT_EMPTY)) is False

    @pytest.mark.parametrize("record", [
        {},
        {"field": None},
        {"field": ""},
        {"field": []},
        {"field": "x"},
        {"field": ["x"]},
        {"field": 0},
        {"field": False},
    ])
    def test_is_empty_and_is_not_empty_are_complements(self, evaluator, record):
        """Test that isEmpty and isNotEmpty always disagree."""
        empty = evaluator.evaluate(record, single("field", Operator.IS_EMPTY))
        not_empty = evaluator.evaluate(record, single("field", Operator.IS_NOT_EMPTY))
        assert empty is not not_empty

    def test_is_empty_missing_field(self, evaluator, client):
        """Test isEmpty on fields that are missing or set."""
        assert evaluator.evaluate(client, single("nonexistent", Operator.IS_EMPTY)) is True
        assert evaluator.evaluate(client, single("phone", Operator.IS_EMPTY)) is False

    def test_in(self, evaluator, client):
        """Test in with array rule values."""
        assert evaluator.evaluate(client, single("employmentType", Operator.IN, ("DG", "DG_ETAT"))) is True
        assert evaluator.evaluate(client, single("employmentType", Operator.IN, ["DG_ETAT"])) is False

    def test_in_is_strict(self, evaluator, client):
        """Test that in compares elements strictly."""
        assert evaluator.evaluate(client, single("employmentType", Operator.IN, ["dg"])) is False
        assert evaluator.evaluate(client, single("employees", Operator.IN, ["12"])) is False
        assert evaluator.evaluate(client, single("employees", Operator.IN, [12])) is True

    def test_in_and_not_in_with_non_array_value(self, evaluator, client):
        """Test the asymmetry when the rule value is not an array."""
        assert evaluator.evaluate(client, single("employmentType", Operator.IN, "DG")) is False
        assert evaluator.evaluate(client, single("employmentType", Operator.NOT_IN, "DG")) is True
        assert evaluator.evaluate(client, single("missing", Operator.NOT_IN, "DG")) is True

    def test_not_in(self, evaluator, client):
        """Test notIn with array rule values."""
        assert evaluator.evaluate(client, single("employmentType", Operator.NOT_IN, ["DG_ETAT"])) is True
        assert evaluator.evaluate(client, single("employmentType", Operator.NOT_IN, ["DG", "DG_ETAT"])) is False

    def test_between_is_inclusive(self, evaluator):
        """Test between at, inside and outside both bounds."""
        condition = single("nip", Operator.BETWEEN, 1000000000, 9000000000)
        assert evaluator.evaluate({"nip": "1000000000"}, condition) is True
        assert evaluator.evaluate({"nip": "5000000000"}, condition) is True
        assert evaluator.evaluate({"nip": "9000000000"}, condition) is True
        assert evaluator.evaluate({"nip": "999999999"}, condition) is False
        assert evaluator.evaluate({"nip": "9000000001"}, condition) is False

    def test_between_does_not_reorder_bounds(self, evaluator):
        """Test that reversed bounds match nothing."""
        condition = single("employees", Operator.BETWEEN, 20, 10)
        assert evaluator.evaluate({"employees": 15}, condition) is False

    def test_between_fails_closed(self, evaluator):
        """Test between with unusable operands."""
        assert evaluator.evaluate({"n": "abc"}, single("n", Operator.BETWEEN, 1, 10)) is False
        assert evaluator.evaluate({"n": 5}, single("n", Operator.BETWEEN, 1, None)) is False
        assert evaluator.evaluate({}, single("n", Operator.BETWEEN, 1, 10)) is False

    def test_integers_beyond_float_range_do_not_match(self, evaluator):
        """Test that huge integers fail closed instead of raising."""
        huge = 10 ** 400
        assert evaluator.evaluate({"n": huge}, single("n", Operator.GREATER_THAN, 5)) is False
        assert evaluator.evaluate({"n": 5}, single("n", Operator.LESS_THAN, huge)) is False
        assert evaluator.evaluate({"n": 5}, single("n", Operator.BETWEEN, 1, huge)) is False
        assert evaluator.evaluate({"n": str(huge)}, single("n", Operator.GREATER_THAN, 5)) is False

    def test_dot_path_resolution(self, evaluator, client):
        """Test nested field access."""
        assert evaluator.evaluate({"company": {"name": "X"}}, single("company.name", Operator.EQUALS, "X")) is True
        assert evaluator.evaluate(client, single("company.settings.timezone", Operator.EQUALS, "europe/warsaw")) is True
        assert evaluator.evaluate(client, single("company.missing.deeper", Operator.EQUALS, "X")) is False

    def test_dot_path_through_missing_nodes_does_not_raise(self, evaluator):
        """Test resolution through absent and null intermediate nodes."""
        assert evaluator.evaluate({}, single("a.b.c", Operator.EQUALS, "X")) is False
        assert evaluator.evaluate({"a": None}, single("a.b.c", Operator.EQUALS, "X")) is False
        assert evaluator.evaluate({"a": "text"}, single("a.b", Operator.EQUALS, "X")) is False
        assert evaluator.evaluate(None, single("a", Operator.EQUALS, "X")) is False
        assert evaluator.evaluate(None, single("a", Operator.IS_EMPTY)) is True

    def test_resolve_field_on_entities(self):
        """Test resolution through attributes of plain objects."""
        entity = ClientEntity(id="c1", name="Acme", nip="1", vat_status=VatStatus.VAT_MONTHLY)
        assert resolve_field(entity, "name") == "Acme"
        assert resolve_field(entity, "_private") is MISSING
        assert resolve_field(entity, "unknown") is MISSING

    def test_evaluate_on_record_view(self, evaluator):
        """Test evaluation against a record built from a dataclass entity."""
        entity = ClientEntity(
            id="c1", name="Acme", nip="5000000001",
            vat_status=VatStatus.VAT_QUARTERLY, gtu_codes=["GTU_05"]
        )
        record = to_record(entity)
        assert evaluator.evaluate(record, single("vat_status", Operator.EQUALS, "vat_quarterly")) is True
        assert evaluator.evaluate(record, single("gtu_codes", Operator.CONTAINS, "GTU_05")) is True
        assert evaluator.evaluate(record, single("nip", Operator.GREATER_THAN, 5000000000)) is True
        assert evaluator.evaluate(record, single("phone", Operator.IS_EMPTY)) is True

    def test_unknown_operator_is_false(self, evaluator, client):
        """Test that an operator outside the enumeration fails closed."""
        assert evaluator.evaluate(client, single("name", "startsWith", "Test")) is False

    def test_and_group(self, evaluator, client):
        """Test AND groups."""
        matching = single("vatStatus", Operator.EQUALS, "VAT_MONTHLY")
        failing = single("zusStatus", Operator.EQUALS, "PREFERENTIAL")
        assert evaluator.evaluate(client, group(LogicalOperator.AND, matching, matching)) is True
        assert evaluator.evaluate(client, group(LogicalOperator.AND, matching, failing)) is False
        assert evaluator.evaluate(client, group(LogicalOperator.AND, failing, failing)) is False

    def test_or_group(self, evaluator, client):
        """Test OR groups."""
        matching = single("vatStatus", Operator.EQUALS, "VAT_MONTHLY")
        failing = single("zusStatus", Operator.EQUALS, "PREFERENTIAL")
        assert evaluator.evaluate(client, group(LogicalOperator.OR, matching, matching)) is True
        assert evaluator.evaluate(client, group(LogicalOperator.OR, failing, matching)) is True
        assert evaluator.evaluate(client, group(LogicalOperator.OR, failing, failing)) is False

    def test_empty_groups_use_vacuous_truth(self, evaluator, client):
        """Test empty AND and OR groups."""
        assert evaluator.evaluate(client, group(LogicalOperator.AND)) is True
        assert evaluator.evaluate(client, group(LogicalOperator.OR)) is False

    def test_nested_groups(self, evaluator, client):
        """Test nested AND inside OR and OR inside AND."""
        a = single("vatStatus", Operator.EQUALS, "VAT_MONTHLY")
        b = single("isActive", Operator.EQUALS, True)
        c = single("zusStatus", Operator.EQUALS, "PREFERENTIAL")
        d = single("gtuCodes", Operator.CONTAINS, "GTU_03")

        or_of_ands = group(LogicalOperator.OR, group(LogicalOperator.AND, a, c), group(LogicalOperator.AND, b, d))
        and_of_ors = group(LogicalOperator.AND, group(LogicalOperator.OR, c, a), group(LogicalOperator.OR, c, d))
        assert evaluator.evaluate(client, or_of_ands) is True
        assert evaluator.evaluate(client, and_of_ors) is True

    def test_reassociating_three_level_tree_keeps_result(self, evaluator, client):
        """Test that regrouping an associative tree does not change the result."""
        a = single("vatStatus", Operator.EQUALS, "VAT_MONTHLY")
        b = single("employees", Operator.BETWEEN, 10, 20)
        c = single("company.name", Operator.CONTAINS, "parent")
        d = single("zusStatus", Operator.EQUALS, "PREFERENTIAL")

        left = group(LogicalOperator.AND, group(LogicalOperator.AND, a, group(LogicalOperator.OR, d, b)), c)
        right = group(LogicalOperator.AND, a, group(LogicalOperator.AND, group(LogicalOperator.OR, b, d), c))
        assert evaluator.evaluate(client, left) is True
        assert evaluator.evaluate(client, right) is True

        client["company"] = {"name": "Solo"}
        assert evaluator.evaluate(client, left) is False
        assert evaluator.evaluate(client, right) is False

    def test_group_short_circuits(self, client):
        """Test that AND stops at the first failing condition."""
        calls = []

        class CountingEvaluator(ConditionEvaluator):
            def _evaluate_single(self, record, condition):
                calls.append(condition.field)
                return super()._evaluate_single(record, condition)

        tree = group(
            LogicalOperator.AND,
            single("zusStatus", Operator.EQUALS, "PREFERENTIAL"),
            single("name", Operator.IS_NOT_EMPTY),
        )
        assert CountingEvaluator().evaluate(client, tree) is False
        assert calls == ["zusStatus"]

    def test_evaluate_does_not_mutate_inputs(self, evaluator, client):
        """Test that evaluation leaves record and condition unchanged."""
        tree = group(LogicalOperator.OR, single("gtuCodes", Operator.CONTAINS, "GTU_01"))
        before = (dict(client), list(client["gtuCodes"]), tree)
        evaluator.evaluate(client, tree)
        assert (dict(client), list(client["gtuCodes"]), tree) == before

    def test_module_level_evaluate(self, client):
        """Test the module-level evaluate helper."""
        assert evaluate(client, single("name", Operator.CONTAINS, "company")) is True
        assert evaluate(client, None) is False
