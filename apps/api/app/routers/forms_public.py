"""Public form endpoints for respondents."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from app.core.config import settings
from app.core.deps import get_db
from app.core.exceptions import FormSubmissionError, ValidationError
from app.core.rate_limit import client_ip, form_client_key, limiter
from app.schemas.forms import FormPublicRead
from app.schemas.submissions import (
    SubmissionOutcome,
    SubmissionRejected,
    ValidateRequest,
    ValidationResponse,
)
from app.services import form_service, submission_service
from app.services.storage_service import IncomingFile

router = APIRouter(prefix="/forms/public", tags=["forms-public"])


def _file_size(upload: UploadFile) -> int:
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


async def _read_multipart(request: Request) -> tuple[dict, list[IncomingFile]]:
    """Split a multipart body into answer values and files keyed by field."""
    body = await request.form()
    answers: dict = {}
    files: list[IncomingFile] = []
    for key in body.keys():
        values = []
        for item in body.getlist(key):
            if isinstance(item, UploadFile):
                # Browsers send an empty part for an untouched file input
                if not item.filename:
                    continue
                files.append(
                    IncomingFile(
                        field_key=key,
                        filename=item.filename,
                        content_type=item.content_type or "application/octet-stream",
                        file=item.file,
                        size=_file_size(item),
                    )
                )
            else:
                values.append(item)
        if values:
            answers[key] = values[0] if len(values) == 1 else values
    return answers, files


@router.get("/{form_id}", response_model=FormPublicRead)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_READ}/minute")
def get_public_form(request: Request, form_id: UUID, db: Session = Depends(get_db)):
    try:
        form = form_service.get_public_form(db, form_id)
    except FormSubmissionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    form_service.increment_views(db, form.id)
    return FormPublicRead(
        form_id=form.id,
        title=form.title,
        description=form.description,
        form_schema=form_service.parse_schema(form),
        settings=form_service.parse_settings(form),
    )


@router.post(
    "/{form_id}/submit",
    response_model=SubmissionOutcome,
    responses={400: {"model": SubmissionRejected}},
)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_FORMS}/minute", key_func=form_client_key)
async def submit_public_form(
    form_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
):
    answers, files = await _read_multipart(request)
    submitter = submission_service.build_submitter(
        answers,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )

    try:
        return await submission_service.submit(db, form_id, answers, files, submitter)
    except ValidationError as exc:
        rejected = SubmissionRejected(reason=exc.message, missing_field=exc.missing_field)
        return JSONResponse(status_code=400, content=rejected.model_dump())
    except FormSubmissionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.post("/{form_id}/validate", response_model=ValidationResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_VALIDATE}/minute")
def validate_public_form(
    form_id: UUID,
    body: ValidateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    answers = body.answers if body.answers is not None else (body.responses or [])
    try:
        return submission_service.validate_live(db, form_id, answers)
    except FormSubmissionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
