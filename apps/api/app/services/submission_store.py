"""Durable submission store.

A submission is committed before any remote call is made. After that, every
state change is a single UPDATE filtered by id so concurrent workers never
lose a counter increment or downgrade a synced row.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.enums import FormSubmissionStatus
from app.db.models import Form, FormSubmission, FormSubmissionError
from app.schemas.submissions import (
    FieldResponse,
    SubmissionErrorRead,
    SubmissionMetadata,
    SubmissionRead,
    SubmissionSyncRead,
    SubmitterMeta,
)
from app.services import storage_service
from app.services.materialize_service import MaterializedSubmission, completion_percentage

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_submission(
    db: Session,
    form: Form,
    materialized: MaterializedSubmission,
    submitter: SubmitterMeta | None = None,
    metadata: SubmissionMetadata | None = None,
) -> FormSubmission:
    """Persist a new submission in `pending` state.

    Base/table ids are copied from the form so later form edits don't retarget it.
    """
    submitter = submitter or SubmitterMeta()
    metadata = metadata or SubmissionMetadata()
    percentage = metadata.completion_percentage
    if percentage is None:
        percentage = completion_percentage(materialized.responses)

    now = _utcnow()
    submission = FormSubmission(
        form_id=form.id,
        airtable_base_id=form.airtable_base_id,
        airtable_table_id=form.airtable_table_id,
        responses_json=[r.model_dump(mode="json") for r in materialized.responses],
        submitter_ip=submitter.ip,
        submitter_user_agent=submitter.user_agent,
        submitter_referrer=submitter.referrer,
        submitter_email=submitter.email,
        submitter_name=submitter.name,
        status=FormSubmissionStatus.PENDING.value,
        sync_attempts=0,
        is_synced=False,
        time_to_complete=metadata.time_to_complete,
        device_type=metadata.device_type,
        browser_info=metadata.browser_info,
        completion_percentage=percentage,
        created_at=now,
        updated_at=now,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def get_submission(db: Session, submission_id: UUID) -> FormSubmission | None:
    return db.query(FormSubmission).filter(FormSubmission.id == submission_id).first()


def load_responses(submission: FormSubmission) -> list[FieldResponse]:
    return [FieldResponse.model_validate(item) for item in submission.responses_json or []]


def mark_synced(db: Session, submission_id: UUID, record_id: str) -> bool:
    """Record the remote id. Returns False if the row was already synced."""
    now = _utcnow()
    result = db.execute(
        update(FormSubmission)
        .where(FormSubmission.id == submission_id, FormSubmission.is_synced.is_(False))
        .values(
            airtable_record_id=record_id,
            is_synced=True,
            status=FormSubmissionStatus.SYNCED.value,
            last_sync_error=None,
            last_sync_attempt_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount > 0


def record_sync_attempt(db: Session, submission_id: UUID, error: str | None = None) -> None:
    """Count one sync attempt with an in-SQL increment.

    With an error, also stores it as `last_sync_error` and marks the row
    failed, unless it has been synced meanwhile.
    """
    now = _utcnow()
    db.execute(
        update(FormSubmission)
        .where(FormSubmission.id == submission_id)
        .values(
            sync_attempts=FormSubmission.sync_attempts + 1,
            last_sync_attempt_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if error is not None:
        db.execute(
            update(FormSubmission)
            .where(FormSubmission.id == submission_id, FormSubmission.is_synced.is_(False))
            .values(last_sync_error=error, status=FormSubmissionStatus.FAILED.value)
            .execution_options(synchronize_session=False)
        )
    db.commit()


def record_error(
    db: Session,
    submission_id: UUID,
    message: str,
    details: Any = None,
) -> FormSubmissionError:
    """Append an error entry and mark the submission failed.

    Attempts are untouched; a synced submission keeps its status.
    """
    entry = FormSubmissionError(
        submission_id=submission_id,
        message=message,
        details=details,
        created_at=_utcnow(),
    )
    db.add(entry)
    db.execute(
        update(FormSubmission)
        .where(FormSubmission.id == submission_id, FormSubmission.is_synced.is_(False))
        .values(status=FormSubmissionStatus.FAILED.value, updated_at=_utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return entry


def is_retry_exhausted(submission: FormSubmission) -> bool:
    return not submission.is_synced and submission.sync_attempts >= settings.MAX_SYNC_ATTEMPTS


def find_retry_candidates(db: Session, limit: int | None = None) -> list[FormSubmission]:
    """Unsynced submissions still under the attempt ceiling, oldest first."""
    query = (
        db.query(FormSubmission)
        .filter(
            FormSubmission.is_synced.is_(False),
            FormSubmission.sync_attempts < settings.MAX_SYNC_ATTEMPTS,
            FormSubmission.status != FormSubmissionStatus.SYNCED.value,
        )
        .order_by(FormSubmission.created_at, FormSubmission.id)
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def find_exhausted(db: Session, form_id: UUID | None = None, limit: int = 100) -> list[FormSubmission]:
    """Unsynced submissions that automatic retry will no longer touch."""
    query = db.query(FormSubmission).filter(
        FormSubmission.is_synced.is_(False),
        FormSubmission.sync_attempts >= settings.MAX_SYNC_ATTEMPTS,
    )
    if form_id:
        query = query.filter(FormSubmission.form_id == form_id)
    return query.order_by(FormSubmission.created_at).limit(limit).all()


def list_submissions(
    db: Session,
    form_id: UUID,
    status: FormSubmissionStatus | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = 50,
    offset: int = 0,
) -> list[FormSubmission]:
    """List a form's submissions, newest first."""
    query = db.query(FormSubmission).filter(FormSubmission.form_id == form_id)
    if status:
        query = query.filter(FormSubmission.status == status.value)
    if start:
        query = query.filter(FormSubmission.created_at >= start)
    if end:
        query = query.filter(FormSubmission.created_at <= end)
    query = query.order_by(FormSubmission.created_at.desc())
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all()


def delete_submission(db: Session, submission: FormSubmission) -> None:
    """Owner-initiated delete, including stored uploads.

    The remote Airtable record is left alone.
    """
    submission_id = submission.id
    stored_names = [
        descriptor.stored_name
        for response in load_responses(submission)
        for descriptor in response.files
    ]
    db.delete(submission)
    db.commit()

    for stored_name in stored_names:
        try:
            storage_service.delete_file(stored_name)
        except Exception:
            logger.exception(
                "submission_upload_delete_failed",
                extra={**build_log_context(submission_id=str(submission_id)), "storage_key": stored_name},
            )


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_submission_read(submission: FormSubmission) -> SubmissionRead:
    return SubmissionRead(
        id=submission.id,
        form_id=submission.form_id,
        airtable_base_id=submission.airtable_base_id,
        airtable_table_id=submission.airtable_table_id,
        airtable_record_id=submission.airtable_record_id,
        status=submission.status,
        responses=load_responses(submission),
        submitter=SubmitterMeta(
            ip=submission.submitter_ip,
            user_agent=submission.submitter_user_agent,
            referrer=submission.submitter_referrer,
            email=submission.submitter_email,
            name=submission.submitter_name,
        ),
        sync=SubmissionSyncRead(
            last_sync_attempt_at=_as_utc(submission.last_sync_attempt_at),
            sync_attempts=submission.sync_attempts,
            last_sync_error=submission.last_sync_error,
            is_synced=submission.is_synced,
            retry_exhausted=is_retry_exhausted(submission),
        ),
        metadata=SubmissionMetadata(
            time_to_complete=submission.time_to_complete,
            device_type=submission.device_type,
            browser_info=submission.browser_info,
            completion_percentage=submission.completion_percentage,
        ),
        errors=[
            SubmissionErrorRead(
                message=entry.message,
                details=entry.details,
                created_at=_as_utc(entry.created_at),
            )
            for entry in submission.errors
        ],
        created_at=_as_utc(submission.created_at),
        updated_at=_as_utc(submission.updated_at),
    )
