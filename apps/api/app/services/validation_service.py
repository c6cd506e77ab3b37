"""Required-field validation over the currently visible fields."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from app.schemas.forms import FieldDefinition, FieldSummary, FormSchema
from app.services.visibility_service import answers_to_map, is_empty_value, resolve_visible_fields


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: dict[str, str] = field(default_factory=dict)
    visible_fields: list[FieldDefinition] = field(default_factory=list)

    @property
    def first_missing_field(self) -> str | None:
        return next(iter(self.errors), None)

    def visible_field_summaries(self) -> list[FieldSummary]:
        return [
            FieldSummary(key=f.key, label=f.label, type=f.type, required=f.required)
            for f in self.visible_fields
        ]


def required_message(field_def: FieldDefinition) -> str:
    return f"{field_def.label} is required"


def validate_answers(
    schema: FormSchema,
    answers: Mapping[str, Any] | Iterable[Any] | None,
) -> ValidationResult:
    """Flag visible required fields that have no answer.

    Presence only: a value of the wrong shape for its field type is accepted.
    Safe to call repeatedly while a respondent moves through a multi-step form.
    """
    answer_map = answers_to_map(answers)
    visible = resolve_visible_fields(schema.fields, answer_map)
    errors: dict[str, str] = {}
    for field_def in visible:
        if not field_def.required:
            continue
        if is_empty_value(answer_map.get(field_def.key)):
            errors[field_def.key] = required_message(field_def)
    return ValidationResult(valid=not errors, errors=errors, visible_fields=visible)
