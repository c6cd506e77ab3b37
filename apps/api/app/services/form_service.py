"""Form service - form lookup, counters, and analytics."""

import uuid
from collections import OrderedDict
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.exceptions import FormUnavailableError, NotFoundError
from app.db.enums import FormSubmissionStatus
from app.db.models import Form, FormSubmission
from app.schemas.forms import (
    FormAnalyticsDay,
    FormAnalyticsRead,
    FormSchema,
    FormSettings,
)


def get_form(db: Session, form_id: uuid.UUID, owner_id: uuid.UUID | None = None) -> Form | None:
    query = db.query(Form).filter(Form.id == form_id)
    if owner_id:
        query = query.filter(Form.owner_id == owner_id)
    return query.first()


def get_public_form(db: Session, form_id: uuid.UUID) -> Form:
    """Form a respondent may submit to.

    Raises NotFoundError when missing and FormUnavailableError when inactive
    or unpublished.
    """
    form = get_form(db, form_id)
    if not form:
        raise NotFoundError("Form not found")
    if not form.is_active or not form.is_published:
        raise FormUnavailableError("Form is not available")
    return form


def parse_schema(form: Form) -> FormSchema:
    return FormSchema.model_validate(form.schema_json or {})


def parse_settings(form: Form) -> FormSettings:
    return FormSettings.model_validate(form.settings_json or {})


def increment_views(db: Session, form_id: uuid.UUID) -> None:
    db.execute(
        update(Form)
        .where(Form.id == form_id)
        .values(total_views=Form.total_views + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def increment_submissions(db: Session, form_id: uuid.UUID) -> None:
    """Bump the synced-submission counter (called once per successful sync)."""
    db.execute(
        update(Form)
        .where(Form.id == form_id)
        .values(total_submissions=Form.total_submissions + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def get_form_analytics(
    db: Session,
    form: Form,
    start: datetime | None = None,
    end: datetime | None = None,
) -> FormAnalyticsRead:
    """Aggregate submission counts for the owner dashboard."""
    query = db.query(
        FormSubmission.created_at,
        FormSubmission.status,
        FormSubmission.time_to_complete,
    ).filter(FormSubmission.form_id == form.id)
    if start:
        query = query.filter(FormSubmission.created_at >= start)
    if end:
        query = query.filter(FormSubmission.created_at <= end)
    rows = query.order_by(FormSubmission.created_at).all()

    by_day: OrderedDict[str, FormAnalyticsDay] = OrderedDict()
    synced = failed = 0
    completion_times: list[int] = []
    for created_at, status, time_to_complete in rows:
        day_key = created_at.date().isoformat()
        day = by_day.setdefault(day_key, FormAnalyticsDay(date=day_key, total=0, synced=0))
        day.total += 1
        if status == FormSubmissionStatus.SYNCED.value:
            synced += 1
            day.synced += 1
        elif status == FormSubmissionStatus.FAILED.value:
            failed += 1
        if time_to_complete is not None:
            completion_times.append(time_to_complete)

    total = len(rows)
    average = round(sum(completion_times) / len(completion_times), 1) if completion_times else None
    conversion = round(total / form.total_views * 100) if form.total_views else 0

    return FormAnalyticsRead(
        form_id=form.id,
        total_responses=total,
        successful_submissions=synced,
        failed_submissions=failed,
        average_completion_time=average,
        responses_by_day=list(by_day.values()),
        total_views=form.total_views,
        conversion_rate=conversion,
        generated_at=datetime.now(timezone.utc),
    )
