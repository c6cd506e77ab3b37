"""Public submission flow: validate, persist, then sync once.

The submission is committed before Airtable is called. From that point on the
respondent always gets an accepted outcome; a failed write is left for the
retry sweep.
"""

import logging
import math
import uuid
from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from app.core.exceptions import ConfigurationError, NotFoundError, ValidationError
from app.core.structured_logging import build_log_context
from app.db.enums import DeviceType, FieldType, SyncState
from app.schemas.submissions import (
    SubmissionMetadata,
    SubmissionOutcome,
    SubmitterMeta,
    ValidationResponse,
)
from app.services import form_service, storage_service, submission_store, sync_service, user_service
from app.services.materialize_service import materialize
from app.services.storage_service import IncomingFile
from app.services.validation_service import validate_answers

logger = logging.getLogger(__name__)

PENDING_SYNC_NOTE = "Response saved, will sync later"
TIME_TO_COMPLETE_KEYS = ("timeToComplete", "time_to_complete")
# Upper bound of the time_to_complete Integer column
MAX_TIME_TO_COMPLETE = 2**31 - 1


def detect_device_type(user_agent: str | None) -> str:
    if user_agent and "Mobile" in user_agent:
        return DeviceType.MOBILE.value
    return DeviceType.DESKTOP.value


def parse_time_to_complete(raw_answers: Mapping[str, Any]) -> int:
    for key in TIME_TO_COMPLETE_KEYS:
        value = raw_answers.get(key)
        if value in (None, ""):
            continue
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            return 0
        if not math.isfinite(seconds):
            return 0
        return min(max(int(seconds), 0), MAX_TIME_TO_COMPLETE)
    return 0


def _first_str(value: Any) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value) if value not in (None, "") else None


def build_submitter(
    raw_answers: Mapping[str, Any],
    ip: str | None,
    user_agent: str | None,
    referrer: str | None,
) -> SubmitterMeta:
    return SubmitterMeta(
        ip=ip,
        user_agent=user_agent,
        referrer=referrer,
        email=_first_str(raw_answers.get("email")),
        name=_first_str(raw_answers.get("name")),
    )


async def submit(
    db: Session,
    form_id: uuid.UUID,
    raw_answers: Mapping[str, Any],
    files: list[IncomingFile] | None = None,
    submitter: SubmitterMeta | None = None,
) -> SubmissionOutcome:
    """
    Accept one public submission.

    Raises (nothing persisted in any of these cases):
        NotFoundError / FormUnavailableError: form missing, inactive or unpublished
        ConfigurationError: the form owner has no usable Airtable credential
        ValidationError: a visible required field is missing, or an upload is rejected
    """
    files = files or []
    submitter = submitter or SubmitterMeta()

    form = form_service.get_public_form(db, form_id)
    token_result = user_service.get_airtable_token(form.owner)
    if not token_result.token:
        logger.error(
            "submission_owner_credential_missing",
            extra=build_log_context(form_id=str(form.id), owner_id=str(form.owner_id)),
        )
        raise ConfigurationError("Form configuration error")

    schema = form_service.parse_schema(form)
    form_settings = form_service.parse_settings(form)

    # Validate before any file is written so rejected submissions leave nothing behind
    preview = materialize(schema, raw_answers).answer_map()
    fields_by_key = schema.field_map()
    # Files under a non-attachment or unknown key are never stored
    files = [
        incoming
        for incoming in files
        if incoming.field_key in fields_by_key
        and fields_by_key[incoming.field_key].type == FieldType.ATTACHMENT.value
    ]
    for incoming in files:
        preview.setdefault(incoming.field_key, [incoming.filename])
    result = validate_answers(schema, preview)
    if not result.valid:
        missing = result.first_missing_field
        raise ValidationError(result.errors[missing], missing_field=missing, errors=result.errors)

    uploads = storage_service.store_uploads(form.id, files) if files else []
    materialized = materialize(schema, raw_answers, uploads)

    metadata = SubmissionMetadata(
        time_to_complete=parse_time_to_complete(raw_answers),
        device_type=detect_device_type(submitter.user_agent),
        browser_info=submitter.user_agent,
    )
    submission = submission_store.create_submission(db, form, materialized, submitter, metadata)
    submission_id = submission.id

    sync_result = await sync_service.attempt_sync(
        db, submission, token_result.token, materialized.airtable_fields
    )

    if sync_result.synced:
        return SubmissionOutcome(
            submission_id=submission_id,
            sync_state=SyncState.SYNCED.value,
            message=form_settings.success_message,
            redirect_url=form_settings.redirect_url,
        )

    logger.info(
        "submission_saved_pending_sync",
        extra=build_log_context(form_id=str(form.id), submission_id=str(submission_id)),
    )
    return SubmissionOutcome(
        submission_id=submission_id,
        sync_state=SyncState.PENDING_RETRY.value,
        message=form_settings.success_message,
        redirect_url=form_settings.redirect_url,
        note=PENDING_SYNC_NOTE,
    )


def validate_live(db: Session, form_id: uuid.UUID, answers: Any) -> ValidationResponse:
    """Live validation while a respondent fills the form. Side-effect free."""
    form = form_service.get_form(db, form_id)
    if not form:
        raise NotFoundError("Form not found")
    result = validate_answers(form_service.parse_schema(form), answers)
    return ValidationResponse(
        valid=result.valid,
        errors=result.errors,
        visible_fields=result.visible_field_summaries(),
    )
