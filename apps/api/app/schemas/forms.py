"""Schemas for form definitions."""

from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class FieldOption(BaseModel):
    id: str | None = None
    name: str
    color: str | None = None


class ConditionRule(BaseModel):
    """Show the owning field only when this predicate holds.

    `operator` is kept as a free string: an unknown operator must survive
    parsing so the evaluator can fail open on it.
    """

    field_key: str = Field(..., min_length=1, max_length=100)
    operator: str
    value: Any = None


class _FieldBase(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    airtable_field_id: str | None = None
    airtable_field_name: str = Field(..., min_length=1, max_length=255)
    label: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    required: bool = False
    show_when: list[ConditionRule] = Field(default_factory=list)
    order: int = 0
    is_visible: bool = True


class ShortTextField(_FieldBase):
    type: Literal["short_text"]
    placeholder: str | None = None


class LongTextField(_FieldBase):
    type: Literal["long_text"]
    placeholder: str | None = None


class SingleSelectField(_FieldBase):
    type: Literal["single_select"]
    options: list[FieldOption] = Field(default_factory=list)


class MultiSelectField(_FieldBase):
    type: Literal["multi_select"]
    options: list[FieldOption] = Field(default_factory=list)


class AttachmentField(_FieldBase):
    type: Literal["attachment"]


FieldDefinition = Annotated[
    Union[ShortTextField, LongTextField, SingleSelectField, MultiSelectField, AttachmentField],
    Field(discriminator="type"),
]


class FormSchema(BaseModel):
    """Ordered field list of a form."""

    fields: list[FieldDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _order_and_dedupe(self) -> "FormSchema":
        seen: set[str] = set()
        for field in self.fields:
            if field.key in seen:
                raise ValueError(f"Duplicate field key: {field.key}")
            seen.add(field.key)
        # Stable sort keeps declaration order for equal `order` values
        self.fields = sorted(self.fields, key=lambda f: f.order)
        return self

    def field_map(self) -> dict[str, FieldDefinition]:
        return {field.key: field for field in self.fields}


class FormSettings(BaseModel):
    allow_multiple_submissions: bool = True
    require_login: bool = False
    show_progress_bar: bool = True
    multi_step: bool = False
    submit_button_text: str = "Submit"
    success_message: str = "Thank you for your submission!"
    redirect_url: str | None = None


class FieldSummary(BaseModel):
    key: str
    label: str
    type: str
    required: bool


class FormPublicRead(BaseModel):
    form_id: UUID
    title: str
    description: str | None
    form_schema: FormSchema
    settings: FormSettings


class FormAnalyticsDay(BaseModel):
    date: str
    total: int
    synced: int


class FormAnalyticsRead(BaseModel):
    form_id: UUID
    total_responses: int
    successful_submissions: int
    failed_submissions: int
    average_completion_time: float | None
    responses_by_day: list[FormAnalyticsDay]
    total_views: int
    conversion_rate: int
    generated_at: datetime
