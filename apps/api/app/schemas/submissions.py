"""Schemas for form submissions and their sync state."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.forms import FieldSummary


class FileDescriptor(BaseModel):
    original_name: str
    stored_name: str
    size: int
    mime_type: str
    url: str


class FieldResponse(BaseModel):
    """One answered field, denormalized so later field renames never leak in."""

    field_key: str
    field_label: str
    field_type: str
    value: Any = None
    files: list[FileDescriptor] = Field(default_factory=list)


class SubmitterMeta(BaseModel):
    ip: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    email: str | None = None
    name: str | None = None


class SubmissionMetadata(BaseModel):
    time_to_complete: int = 0
    device_type: str | None = None
    browser_info: str | None = None
    completion_percentage: float | None = None


class SubmissionOutcome(BaseModel):
    """Result of a public submit.

    `accepted` is True for anything that got past validation; `sync_state`
    says whether Airtable already has the record.
    """

    accepted: bool = True
    submission_id: UUID
    sync_state: str
    message: str
    redirect_url: str | None = None
    note: str | None = None


class SubmissionRejected(BaseModel):
    accepted: bool = False
    reason: str
    missing_field: str | None = None


class AnswerItem(BaseModel):
    field_key: str
    value: Any = None


class ValidateRequest(BaseModel):
    # Either {"answers": {"key": value}} or {"responses": [{"field_key", "value"}]}
    answers: dict[str, Any] | None = None
    responses: list[AnswerItem] | None = None


class ValidationResponse(BaseModel):
    valid: bool
    errors: dict[str, str]
    visible_fields: list[FieldSummary]


class SubmissionErrorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    details: Any = None
    created_at: datetime


class SubmissionSyncRead(BaseModel):
    last_sync_attempt_at: datetime | None
    sync_attempts: int
    last_sync_error: str | None
    is_synced: bool
    retry_exhausted: bool


class SubmissionRead(BaseModel):
    id: UUID
    form_id: UUID
    airtable_base_id: str
    airtable_table_id: str
    airtable_record_id: str | None
    status: str
    responses: list[FieldResponse]
    submitter: SubmitterMeta
    sync: SubmissionSyncRead
    metadata: SubmissionMetadata
    errors: list[SubmissionErrorRead]
    created_at: datetime
    updated_at: datetime


class RetrySyncResponse(BaseModel):
    success: bool
    airtable_record_id: str | None = None
    error: str | None = None
    message: str | None = None


class RetrySweepResponse(BaseModel):
    candidates: int
    synced: int
    failed: int
    skipped: int
