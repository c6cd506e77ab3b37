"""Remote sync executor and retry sweep.

One call to `attempt_sync` is exactly one Airtable write attempt. The
submission row is already durable, so a failed attempt is recorded on it and
returned to the caller, never raised.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AlreadySyncedError,
    ConfigurationError,
    NotFoundError,
    RetryExhaustedError,
)
from app.core.structured_logging import build_log_context
from app.db.models import FormSubmission
from app.schemas.submissions import RetrySweepResponse
from app.services import airtable_api, form_service, submission_store, user_service
from app.services.materialize_service import build_airtable_fields

logger = logging.getLogger(__name__)

MISSING_CREDENTIAL_MESSAGE = "Form owner Airtable credential is missing or expired"


@dataclass
class SyncResult:
    synced: bool
    record_id: str | None = None
    error: str | None = None


def payload_for_submission(submission: FormSubmission) -> dict[str, Any]:
    """Rebuild the Airtable payload from what was stored at submit time."""
    schema = form_service.parse_schema(submission.form) if submission.form else None
    return build_airtable_fields(schema, submission_store.load_responses(submission))


async def attempt_sync(
    db: Session,
    submission: FormSubmission,
    access_token: str,
    fields: dict[str, Any] | None = None,
) -> SyncResult:
    """Make one write attempt for `submission`.

    A submission that is already synced is returned as-is without a remote call.
    """
    if submission.is_synced:
        return SyncResult(synced=True, record_id=submission.airtable_record_id)

    submission_id = submission.id
    form_id = submission.form_id
    log_context = build_log_context(
        form_id=str(form_id),
        submission_id=str(submission_id),
        attempt=submission.sync_attempts + 1,
    )
    if fields is None:
        fields = payload_for_submission(submission)

    record_id, error = await airtable_api.create_record(
        access_token,
        submission.airtable_base_id,
        submission.airtable_table_id,
        fields,
    )

    if error is None:
        if submission_store.mark_synced(db, submission_id, record_id):
            form_service.increment_submissions(db, form_id)
            logger.info("submission_synced", extra=log_context)
            return SyncResult(synced=True, record_id=record_id)
        # Another worker got there first; report the record that stuck
        db.refresh(submission)
        return SyncResult(synced=True, record_id=submission.airtable_record_id)

    submission_store.record_sync_attempt(db, submission_id, error=error.message)
    submission_store.record_error(db, submission_id, error.message, error.to_details())
    logger.warning("submission_sync_failed", extra={**log_context, "status": error.status})
    return SyncResult(synced=False, error=error.message)


async def retry_submission(
    db: Session,
    submission_id: UUID,
    *,
    automatic: bool = False,
) -> SyncResult:
    """
    Retry the Airtable write for a stored submission.

    The automatic path refuses submissions at the attempt ceiling; an owner's
    manual retry is allowed past it.

    Raises:
        NotFoundError: unknown submission
        AlreadySyncedError: submission already has a remote record
        RetryExhaustedError: automatic retry at the ceiling
        ConfigurationError: manual retry without a usable owner credential
    """
    submission = submission_store.get_submission(db, submission_id)
    if not submission:
        raise NotFoundError("Submission not found")
    if submission.is_synced:
        raise AlreadySyncedError("Submission is already synced")
    if automatic and submission_store.is_retry_exhausted(submission):
        raise RetryExhaustedError(
            f"Submission reached {settings.MAX_SYNC_ATTEMPTS} sync attempts"
        )

    token_result = user_service.get_airtable_token(submission.form.owner)
    if not token_result.token:
        if not automatic:
            raise ConfigurationError(MISSING_CREDENTIAL_MESSAGE)
        # Count it so a permanently disconnected owner exhausts instead of looping
        submission_store.record_sync_attempt(db, submission_id, error=MISSING_CREDENTIAL_MESSAGE)
        submission_store.record_error(db, submission_id, MISSING_CREDENTIAL_MESSAGE)
        return SyncResult(synced=False, error=MISSING_CREDENTIAL_MESSAGE)

    return await attempt_sync(db, submission, token_result.token)


async def retry_pending_submissions(db: Session, limit: int | None = None) -> RetrySweepResponse:
    """Drive one automatic attempt for each retry candidate."""
    candidates = submission_store.find_retry_candidates(db, limit=limit)
    candidate_ids = [c.id for c in candidates]
    synced = failed = skipped = 0

    for submission_id in candidate_ids:
        try:
            result = await retry_submission(db, submission_id, automatic=True)
        except (AlreadySyncedError, RetryExhaustedError, NotFoundError) as exc:
            logger.info(
                "submission_retry_skipped",
                extra={**build_log_context(submission_id=str(submission_id)), "reason": exc.message},
            )
            skipped += 1
            continue

        if result.synced:
            synced += 1
            continue
        failed += 1
        submission = submission_store.get_submission(db, submission_id)
        if submission and submission_store.is_retry_exhausted(submission):
            logger.warning(
                "submission_retry_exhausted",
                extra=build_log_context(
                    form_id=str(submission.form_id),
                    submission_id=str(submission_id),
                    attempt=submission.sync_attempts,
                ),
            )

    logger.info(
        "submission_retry_sweep_done",
        extra={"candidates": len(candidate_ids), "synced": synced, "failed": failed, "skipped": skipped},
    )
    return RetrySweepResponse(
        candidates=len(candidate_ids),
        synced=synced,
        failed=failed,
        skipped=skipped,
    )
