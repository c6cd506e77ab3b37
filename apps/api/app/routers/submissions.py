"""Owner endpoints for a form's submissions: listing, export, analytics, retry."""

import json
import logging
from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user, get_db, require_csrf_header
from app.core.exceptions import FormSubmissionError
from app.core.rate_limit import limiter
from app.core.structured_logging import build_log_context
from app.db.enums import FormSubmissionStatus
from app.db.models import Form, FormSubmission, User
from app.schemas.forms import FormAnalyticsRead
from app.schemas.submissions import RetrySyncResponse, SubmissionRead
from app.services import export_service, form_service, submission_store, sync_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submissions"])


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _get_owned_form(db: Session, form_id: UUID, user: User) -> Form:
    form = form_service.get_form(db, form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    if form.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return form


def _get_owned_submission(db: Session, submission_id: UUID, user: User) -> FormSubmission:
    submission = submission_store.get_submission(db, submission_id)
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    if submission.form.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return submission


@router.get("/forms/{form_id}/submissions", response_model=list[SubmissionRead])
@limiter.limit(f"{settings.RATE_LIMIT_API}/minute")
def list_form_submissions(
    request: Request,
    form_id: UUID,
    status: FormSubmissionStatus | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """List a form's submissions, newest first."""
    form = _get_owned_form(db, form_id, user)
    submissions = submission_store.list_submissions(
        db, form.id, status=status, limit=limit, offset=offset
    )
    return [submission_store.build_submission_read(s) for s in submissions]


@router.get("/forms/{form_id}/submissions/export")
@limiter.limit(f"{settings.RATE_LIMIT_API}/minute")
def export_form_submissions(
    request: Request,
    form_id: UUID,
    format: Literal["csv", "json"] = "csv",
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Export submissions as CSV (current field labels as columns) or JSON."""
    form = _get_owned_form(db, form_id, user)
    start, end = _as_utc(start_date), _as_utc(end_date)

    if format == "json":
        payload = export_service.export_submissions_json(db, form, start, end)
        headers = {
            "Content-Disposition": f'attachment; filename="{export_service.export_filename(form, "json")}"'
        }
        return Response(
            content=json.dumps({"responses": payload}, indent=2),
            media_type="application/json",
            headers=headers,
        )

    headers = {
        "Content-Disposition": f'attachment; filename="{export_service.export_filename(form, "csv")}"'
    }
    return StreamingResponse(
        export_service.stream_submissions_csv(db, form, start, end),
        media_type="text/csv",
        headers=headers,
    )


@router.get("/forms/{form_id}/analytics", response_model=FormAnalyticsRead)
@limiter.limit(f"{settings.RATE_LIMIT_API}/minute")
def get_form_analytics(
    request: Request,
    form_id: UUID,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    form = _get_owned_form(db, form_id, user)
    return form_service.get_form_analytics(db, form, _as_utc(start_date), _as_utc(end_date))


@router.get("/submissions/{submission_id}", response_model=SubmissionRead)
def get_submission(
    submission_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    submission = _get_owned_submission(db, submission_id, user)
    return submission_store.build_submission_read(submission)


@router.delete("/submissions/{submission_id}", dependencies=[Depends(require_csrf_header)])
def delete_submission(
    submission_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    submission = _get_owned_submission(db, submission_id, user)
    submission_store.delete_submission(db, submission)
    return {"message": "Submission deleted"}


@router.post(
    "/submissions/{submission_id}/retry-sync",
    response_model=RetrySyncResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(f"{settings.RATE_LIMIT_API}/minute")
async def retry_submission_sync(
    request: Request,
    submission_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Manually retry the Airtable write (allowed past the automatic ceiling)."""
    submission = _get_owned_submission(db, submission_id, user)
    try:
        result = await sync_service.retry_submission(db, submission.id)
    except FormSubmissionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    if result.synced:
        return RetrySyncResponse(
            success=True,
            airtable_record_id=result.record_id,
            message="Submission synced successfully",
        )

    logger.info(
        "submission_manual_retry_failed",
        extra=build_log_context(submission_id=str(submission_id), owner_id=str(user.id)),
    )
    failed = RetrySyncResponse(success=False, error=result.error, message="Failed to sync submission")
    return JSONResponse(status_code=502, content=failed.model_dump())
