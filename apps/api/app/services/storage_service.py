"""Upload storage for attachment fields.

Files are written before the submission row exists; Airtable pulls them from
the returned URL once the record is created, so every URL must be fetchable
from the public internet in production.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from typing import BinaryIO

import boto3
from botocore.exceptions import ClientError

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.services.materialize_service import StoredUpload

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "pdf", "doc", "docx", "txt", "csv", "xlsx"}
ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "text/csv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
# Airtable downloads attachments asynchronously, so presigned links outlive the request
PRESIGNED_URL_EXPIRY_SECONDS = 7 * 24 * 3600


@dataclass
class IncomingFile:
    """A file pulled off the multipart body, not yet stored."""

    field_key: str
    filename: str
    content_type: str
    file: BinaryIO
    size: int


# =============================================================================
# Storage Backend
# =============================================================================


def _get_s3_client():
    return boto3.client("s3", region_name=settings.S3_REGION)


def _get_local_storage_path() -> str:
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def validate_file(filename: str, content_type: str, file_size: int) -> tuple[bool, str | None]:
    """
    Validate file against allowlists and size limits.

    Returns (is_valid, error_message)
    """
    ext = _extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        return False, f"File extension '.{ext}' not allowed"

    if content_type not in ALLOWED_MIME_TYPES:
        return False, f"Content type '{content_type}' not allowed"

    if file_size > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        return False, f"File size exceeds {max_mb:.0f} MB limit"

    return True, None


def check_upload_limits(files: list[IncomingFile]) -> None:
    """Reject the whole submission if any file breaks the upload rules."""
    per_field: dict[str, int] = {}
    for incoming in files:
        per_field[incoming.field_key] = per_field.get(incoming.field_key, 0) + 1
        if per_field[incoming.field_key] > settings.MAX_FILES_PER_FIELD:
            raise ValidationError(
                f"Too many files for {incoming.field_key} (max {settings.MAX_FILES_PER_FIELD})",
                missing_field=incoming.field_key,
            )
        is_valid, error = validate_file(incoming.filename, incoming.content_type, incoming.size)
        if not is_valid:
            raise ValidationError(error or "Invalid file", missing_field=incoming.field_key)


def store_file(storage_key: str, file: BinaryIO) -> None:
    """Store file to configured backend."""
    if settings.STORAGE_BACKEND == "s3":
        file.seek(0)
        _get_s3_client().upload_fileobj(file, settings.S3_BUCKET, storage_key)
        return

    path = os.path.join(_get_local_storage_path(), storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        file.seek(0)
        f.write(file.read())


def public_url(storage_key: str) -> str:
    """URL Airtable can download the stored file from."""
    if settings.STORAGE_BACKEND == "s3":
        try:
            return _get_s3_client().generate_presigned_url(
                "get_object",
                Params={"Bucket": settings.S3_BUCKET, "Key": storage_key},
                ExpiresIn=PRESIGNED_URL_EXPIRY_SECONDS,
            )
        except ClientError:
            logger.exception("upload_presign_failed", extra={"storage_key": storage_key})
            raise
    return f"{settings.PUBLIC_FILE_BASE_URL.rstrip('/')}/{storage_key}"


def delete_file(storage_key: str) -> None:
    if settings.STORAGE_BACKEND == "s3":
        _get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        return
    path = os.path.join(_get_local_storage_path(), storage_key)
    if os.path.exists(path):
        os.remove(path)


# =============================================================================
# Service Functions
# =============================================================================


def store_uploads(form_id: uuid.UUID, files: list[IncomingFile]) -> list[StoredUpload]:
    """Validate then store every file, returning descriptors with public URLs."""
    check_upload_limits(files)
    stored: list[StoredUpload] = []
    for incoming in files:
        ext = _extension(incoming.filename)
        stored_name = f"{form_id}/{uuid.uuid4()}.{ext}"
        store_file(stored_name, incoming.file)
        stored.append(
            StoredUpload(
                field_key=incoming.field_key,
                original_name=incoming.filename,
                stored_name=stored_name,
                size=incoming.size,
                mime_type=incoming.content_type,
                url=public_url(stored_name),
            )
        )
    return stored
