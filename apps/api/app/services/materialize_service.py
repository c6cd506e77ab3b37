"""Shape raw submitted values into FieldResponses and an Airtable payload.

Nothing here rejects input; required-field checks belong to
validation_service.
"""

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from app.db.enums import FieldType
from app.schemas.forms import FormSchema
from app.schemas.submissions import FieldResponse, FileDescriptor


@dataclass(frozen=True)
class StoredUpload:
    """An uploaded file already written to storage."""

    field_key: str
    original_name: str
    stored_name: str
    size: int
    mime_type: str
    url: str

    def to_descriptor(self) -> FileDescriptor:
        return FileDescriptor(
            original_name=self.original_name,
            stored_name=self.stored_name,
            size=self.size,
            mime_type=self.mime_type,
            url=self.url,
        )

    def to_attachment(self) -> dict[str, str]:
        return {"url": self.url, "filename": self.original_name}


@dataclass
class MaterializedSubmission:
    responses: list[FieldResponse] = field(default_factory=list)
    airtable_fields: dict[str, Any] = field(default_factory=dict)

    def answer_map(self) -> dict[str, Any]:
        return {r.field_key: r.value for r in self.responses}


def split_multi_select(value: str) -> list[str]:
    return [token.strip() for token in value.split(",") if token.strip()]


def coerce_value(field_type: str, value: Any) -> Any:
    if field_type == FieldType.MULTI_SELECT.value and isinstance(value, str):
        return split_multi_select(value)
    return value


def group_uploads(uploads: Sequence[StoredUpload]) -> dict[str, list[StoredUpload]]:
    grouped: dict[str, list[StoredUpload]] = defaultdict(list)
    for upload in uploads:
        grouped[upload.field_key].append(upload)
    return dict(grouped)


def materialize(
    schema: FormSchema,
    raw_answers: Mapping[str, Any],
    uploads: Sequence[StoredUpload] | None = None,
) -> MaterializedSubmission:
    """Build FieldResponses (labels/types frozen now) and the Airtable payload.

    The payload is keyed by each field's Airtable column name, not its key.
    """
    result = MaterializedSubmission()

    for field_def in schema.fields:
        if field_def.key not in raw_answers:
            continue
        raw_value = raw_answers[field_def.key]
        if raw_value is None or raw_value == "":
            continue
        value = coerce_value(field_def.type, raw_value)
        result.responses.append(
            FieldResponse(
                field_key=field_def.key,
                field_label=field_def.label,
                field_type=field_def.type,
                value=value,
            )
        )
        result.airtable_fields[field_def.airtable_field_name] = value

    if not uploads:
        return result

    fields_by_key = schema.field_map()
    for field_key, field_uploads in group_uploads(uploads).items():
        field_def = fields_by_key.get(field_key)
        if field_def is None or field_def.type != FieldType.ATTACHMENT.value:
            continue
        attachments = [upload.to_attachment() for upload in field_uploads]
        descriptors = [upload.to_descriptor() for upload in field_uploads]
        result.airtable_fields[field_def.airtable_field_name] = attachments

        existing = next((r for r in result.responses if r.field_key == field_key), None)
        if existing is not None:
            existing.files.extend(descriptors)
        else:
            result.responses.append(
                FieldResponse(
                    field_key=field_key,
                    field_label=field_def.label,
                    field_type=field_def.type,
                    value=attachments,
                    files=descriptors,
                )
            )

    return result


def build_airtable_fields(schema: FormSchema | None, responses: Sequence[FieldResponse]) -> dict[str, Any]:
    """Rebuild the Airtable payload from stored responses (retry path).

    Column names come from the form's current fields; a response whose field
    has since been removed falls back to its frozen label.
    """
    fields_by_key = schema.field_map() if schema else {}
    payload: dict[str, Any] = {}
    for response in responses:
        field_def = fields_by_key.get(response.field_key)
        column = field_def.airtable_field_name if field_def else response.field_label
        if response.field_type == FieldType.ATTACHMENT.value and response.files:
            payload[column] = [
                {"url": descriptor.url, "filename": descriptor.original_name}
                for descriptor in response.files
            ]
        else:
            payload[column] = response.value
    return payload


def completion_percentage(responses: Sequence[FieldResponse]) -> float:
    """Share of responses that carry a non-empty value, rounded."""
    if not responses:
        return 0
    completed = sum(1 for r in responses if r.value not in (None, "", []))
    return round(completed / len(responses) * 100)
