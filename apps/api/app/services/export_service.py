"""Submission exports (CSV and JSON) for form owners."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Iterator, Sequence

from sqlalchemy.orm import Session

from app.db.models import Form, FormSubmission
from app.schemas.forms import FormSchema
from app.services import form_service, submission_store


CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@")
CSV_FIXED_HEADERS = ["Submission Date", "Status"]


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


def _csv_safe(value: str) -> str:
    # Plain signed numbers like -5 are data, not formulas
    if value and value.startswith(CSV_DANGEROUS_PREFIXES) and not _is_number(value):
        return f"'{value}"
    return value


def _serialize_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        # Multi-select values and attachment placeholders
        return ", ".join(
            item.get("url", "") if isinstance(item, dict) else str(item) for item in value
        )
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True)
    return str(value)


def _write_csv_row(values: Sequence[Any]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([_csv_safe(_serialize_csv_value(value)) for value in values])
    return output.getvalue()


def _submitted_at(submission: FormSubmission) -> datetime:
    created_at = submission.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at


def csv_headers(schema: FormSchema) -> list[str]:
    return CSV_FIXED_HEADERS + [field.label for field in schema.fields]


def csv_row(schema: FormSchema, submission: FormSubmission) -> list[Any]:
    """One export row: the form's current fields, empty cell when unanswered."""
    values = {
        item.get("field_key"): item.get("value")
        for item in submission.responses_json or []
        if isinstance(item, dict)
    }
    row: list[Any] = [_submitted_at(submission), submission.status]
    row.extend(values.get(field.key, "") for field in schema.fields)
    return row


def _export_query(
    db: Session,
    form: Form,
    start: datetime | None,
    end: datetime | None,
) -> list[FormSubmission]:
    return submission_store.list_submissions(db, form.id, start=start, end=end, limit=None)


def stream_submissions_csv(
    db: Session,
    form: Form,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Iterator[str]:
    """Rows are built up front so the session can close before streaming."""
    schema = form_service.parse_schema(form)
    rows = [csv_row(schema, submission) for submission in _export_query(db, form, start, end)]
    return _iter_csv(csv_headers(schema), rows)


def _iter_csv(headers: list[str], rows: list[list[Any]]) -> Iterator[str]:
    yield _write_csv_row(headers)
    for row in rows:
        yield _write_csv_row(row)


def export_submissions_json(
    db: Session,
    form: Form,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict[str, Any]]:
    return [
        submission_store.build_submission_read(submission).model_dump(mode="json")
        for submission in _export_query(db, form, start, end)
    ]


def export_filename(form: Form, extension: str) -> str:
    safe_title = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in form.title).strip("_")
    return f"{safe_title or 'form'}_responses.{extension}"