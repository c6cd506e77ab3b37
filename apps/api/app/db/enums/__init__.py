"""Enum definitions for application constants."""

from app.db.enums.forms import (
    ConditionOperator,
    DeviceType,
    FieldType,
    FormSubmissionStatus,
    SyncState,
)

DEFAULT_SUBMISSION_STATUS = FormSubmissionStatus.PENDING.value

__all__ = [
    "ConditionOperator",
    "DEFAULT_SUBMISSION_STATUS",
    "DeviceType",
    "FieldType",
    "FormSubmissionStatus",
    "SyncState",
]
