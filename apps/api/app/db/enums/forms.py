"""Form-related enums."""

from enum import Enum


class FieldType(str, Enum):
    """Semantic type of a form field (bound to one Airtable column)."""

    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    ATTACHMENT = "attachment"


class ConditionOperator(str, Enum):
    """Operators a visibility rule may use."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class FormSubmissionStatus(str, Enum):
    """Lifecycle of a stored submission.

    pending -> synced | failed; failed -> synced | failed. synced is terminal.
    SUBMITTED is kept for rows written by older clients and is treated like
    pending by the retry scanner.
    """

    PENDING = "pending"
    SUBMITTED = "submitted"
    FAILED = "failed"
    SYNCED = "synced"


class SyncState(str, Enum):
    """Sync outcome reported to submitters alongside `accepted`."""

    SYNCED = "synced"
    PENDING_RETRY = "pending_retry"


class DeviceType(str, Enum):
    MOBILE = "mobile"
    DESKTOP = "desktop"
