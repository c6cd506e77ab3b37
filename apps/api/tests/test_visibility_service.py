"""Tests for condition evaluation and field visibility."""

import logging

import pytest

from app.schemas.forms import ConditionRule, FormSchema
from app.services.visibility_service import (
    answers_to_map,
    evaluate_condition,
    resolve_visible_fields,
)


def _rule(operator: str, value=None, field_key: str = "trigger") -> ConditionRule:
    return ConditionRule(field_key=field_key, operator=operator, value=value)


def test_equals_is_type_sensitive():
    assert evaluate_condition(_rule("equals", "Yes"), "Yes") is True
    assert evaluate_condition(_rule("equals", "1"), 1) is False
    assert evaluate_condition(_rule("equals", 1), True) is False
    assert evaluate_condition(_rule("equals", "Yes"), None) is False


def test_not_equals_negates_equals():
    assert evaluate_condition(_rule("not_equals", "Yes"), "No") is True
    assert evaluate_condition(_rule("not_equals", "Yes"), "Yes") is False
    assert evaluate_condition(_rule("not_equals", "Yes"), None) is True


def test_contains_is_case_insensitive_and_false_on_missing():
    assert evaluate_condition(_rule("contains", "acme"), "ACME Corp") is True
    assert evaluate_condition(_rule("contains", "acme"), "Globex") is False
    assert evaluate_condition(_rule("contains", "acme"), None) is False


def test_contains_searches_list_values():
    assert evaluate_condition(_rule("contains", "blue"), ["Red", "Blue"]) is True
    assert evaluate_condition(_rule("contains", "green"), ["Red", "Blue"]) is False


def test_not_contains_is_true_on_missing():
    assert evaluate_condition(_rule("not_contains", "acme"), None) is True
    assert evaluate_condition(_rule("not_contains", "acme"), "Acme Inc") is False
    assert evaluate_condition(_rule("not_contains", "acme"), "Globex") is True


@pytest.mark.parametrize("value", [None, "", []])
def test_is_empty_values(value):
    assert evaluate_condition(_rule("is_empty"), value) is True
    assert evaluate_condition(_rule("is_not_empty"), value) is False


def test_is_not_empty_ignores_rule_value():
    assert evaluate_condition(_rule("is_not_empty", "ignored"), "x") is True
    assert evaluate_condition(_rule("is_empty", "ignored"), ["a"]) is False


def test_unknown_operator_fails_open_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.visibility_service"):
        assert evaluate_condition(_rule("greater_than", 5), 1) is True
    assert any("visibility_unknown_operator" in r.message for r in caplog.records)


def _schema() -> FormSchema:
    return FormSchema.model_validate(
        {
            "fields": [
                {"key": "a", "type": "short_text", "airtable_field_name": "A", "label": "A"},
                {
                    "key": "b",
                    "type": "short_text",
                    "airtable_field_name": "B",
                    "label": "B",
                    "show_when": [{"field_key": "a", "operator": "equals", "value": "Yes"}],
                },
                {
                    "key": "c",
                    "type": "short_text",
                    "airtable_field_name": "C",
                    "label": "C",
                    "show_when": [
                        {"field_key": "a", "operator": "equals", "value": "Yes"},
                        {"field_key": "b", "operator": "is_not_empty"},
                    ],
                },
            ]
        }
    )


def test_resolver_hides_field_when_rule_false():
    visible = resolve_visible_fields(_schema().fields, {"a": "No"})
    assert [f.key for f in visible] == ["a"]


def test_resolver_combines_rules_with_and():
    fields = _schema().fields
    assert [f.key for f in resolve_visible_fields(fields, {"a": "Yes"})] == ["a", "b"]
    assert [f.key for f in resolve_visible_fields(fields, {"a": "Yes", "b": "x"})] == ["a", "b", "c"]


def test_resolver_treats_missing_trigger_as_none():
    visible = resolve_visible_fields(_schema().fields, {})
    assert [f.key for f in visible] == ["a"]


def test_resolver_accepts_response_items():
    items = [{"field_key": "a", "value": "Yes"}]
    visible = resolve_visible_fields(_schema().fields, items)
    assert [f.key for f in visible] == ["a", "b"]


def test_answers_to_map_handles_objects_and_none():
    class Item:
        field_key = "a"
        value = "Yes"

    assert answers_to_map(None) == {}
    assert answers_to_map([Item()]) == {"a": "Yes"}


def test_schema_rejects_duplicate_keys():
    with pytest.raises(ValueError, match="Duplicate field key"):
        FormSchema.model_validate(
            {
                "fields": [
                    {"key": "a", "type": "short_text", "airtable_field_name": "A", "label": "A"},
                    {"key": "a", "type": "long_text", "airtable_field_name": "A2", "label": "A2"},
                ]
            }
        )


def test_schema_sorts_by_order_keeping_ties_stable():
    schema = FormSchema.model_validate(
        {
            "fields": [
                {"key": "z", "type": "short_text", "airtable_field_name": "Z", "label": "Z", "order": 2},
                {"key": "x", "type": "short_text", "airtable_field_name": "X", "label": "X", "order": 1},
                {"key": "y", "type": "short_text", "airtable_field_name": "Y", "label": "Y", "order": 1},
            ]
        }
    )
    assert [f.key for f in schema.fields] == ["x", "y", "z"]
