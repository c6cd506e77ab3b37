"""Domain errors for the submission pipeline.

Everything raised before a submission is persisted surfaces to the caller.
Sync failures after persistence are recorded on the submission instead
(see sync_service), so `SyncError` is returned, not raised, on that path.
"""

from __future__ import annotations

from typing import Any


class FormSubmissionError(Exception):
    """Base class for submission pipeline errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FormSubmissionError):
    """A visible required field is missing."""

    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        missing_field: str | None = None,
        errors: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.missing_field = missing_field
        self.errors = errors or {}


class NotFoundError(FormSubmissionError):
    """Form (or submission) does not exist."""

    status_code = 404


class FormUnavailableError(NotFoundError):
    """Form exists but is inactive or unpublished."""

    status_code = 403


class ConfigurationError(FormSubmissionError):
    """Form owner has no usable Airtable credential."""

    status_code = 500


class AlreadySyncedError(FormSubmissionError):
    """Retry requested for a submission that already has a remote record."""

    status_code = 409


class RetryExhaustedError(FormSubmissionError):
    """Automatic retry refused: the attempt ceiling has been reached."""

    status_code = 409


class SyncError(FormSubmissionError):
    """Remote write failed. Carried on the record, never raised to submitters."""

    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.status = status
        self.details = details

    def to_details(self) -> dict[str, Any]:
        return {"status": self.status, "response": self.details}
