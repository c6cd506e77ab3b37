"""Conditional field visibility.

`evaluate_condition` checks one rule against one answer; the resolver applies
every rule of every field (AND semantics) and keeps declaration order. Both
are pure and safe to call concurrently.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from app.db.enums import ConditionOperator
from app.schemas.forms import ConditionRule, FieldDefinition

logger = logging.getLogger(__name__)


def is_empty_value(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and len(value) == 0)


def _strict_equals(value: Any, expected: Any) -> bool:
    # bool is an int subclass; True must not equal 1
    if isinstance(value, bool) != isinstance(expected, bool):
        return False
    if isinstance(value, str) != isinstance(expected, str):
        return False
    return value == expected


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(_stringify(item) for item in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _contains(value: Any, expected: Any) -> bool:
    return _stringify(expected).lower() in _stringify(value).lower()


def evaluate_condition(rule: ConditionRule, value: Any) -> bool:
    """Return whether `rule` holds for the answered `value`.

    Never raises. An unknown operator evaluates to True so a malformed rule
    cannot block real submissions.
    """
    operator = rule.operator
    expected = rule.value

    if operator == ConditionOperator.EQUALS.value:
        return _strict_equals(value, expected)
    if operator == ConditionOperator.NOT_EQUALS.value:
        return not _strict_equals(value, expected)
    if operator == ConditionOperator.CONTAINS.value:
        if value is None:
            return False
        return _contains(value, expected)
    if operator == ConditionOperator.NOT_CONTAINS.value:
        if value is None:
            return True
        return not _contains(value, expected)
    if operator == ConditionOperator.IS_EMPTY.value:
        return is_empty_value(value)
    if operator == ConditionOperator.IS_NOT_EMPTY.value:
        return not is_empty_value(value)

    logger.warning(
        "visibility_unknown_operator",
        extra={"operator": operator, "field_key": rule.field_key},
    )
    return True


def answers_to_map(answers: Mapping[str, Any] | Iterable[Any] | None) -> dict[str, Any]:
    """Normalize answers to {field_key: value}.

    Accepts a plain mapping or a list of {"field_key", "value"} items (the
    shape stored FieldResponses and live-validation payloads use).
    """
    if answers is None:
        return {}
    if isinstance(answers, Mapping):
        return dict(answers)
    result: dict[str, Any] = {}
    for item in answers:
        if isinstance(item, Mapping):
            key = item.get("field_key")
            value = item.get("value")
        else:
            key = getattr(item, "field_key", None)
            value = getattr(item, "value", None)
        if key is not None:
            result[str(key)] = value
    return result


def is_field_visible(field: FieldDefinition, answers: Mapping[str, Any]) -> bool:
    if not field.show_when:
        return True
    return all(evaluate_condition(rule, answers.get(rule.field_key)) for rule in field.show_when)


def resolve_visible_fields(
    fields: Sequence[FieldDefinition],
    answers: Mapping[str, Any] | Iterable[Any] | None,
) -> list[FieldDefinition]:
    """Return the currently visible fields in declared order.

    A rule whose trigger field is unanswered sees None.
    """
    answer_map = answers_to_map(answers)
    return [field for field in fields if is_field_visible(field, answer_map)]
