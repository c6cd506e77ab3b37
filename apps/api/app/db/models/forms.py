"""SQLAlchemy ORM models for forms and their submissions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType
from app.db.enums import DEFAULT_SUBMISSION_STATUS

if TYPE_CHECKING:
    from app.db.models import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Form(Base):
    """Form bound to one Airtable table."""

    __tablename__ = "forms"
    __table_args__ = (
        Index("idx_forms_owner_created", "owner_id", "created_at"),
        Index("idx_forms_active_published", "is_active", "is_published"),
        Index("idx_forms_airtable_table", "airtable_base_id", "airtable_table_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    airtable_base_id: Mapped[str] = mapped_column(String(100), nullable=False)
    airtable_base_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    airtable_table_id: Mapped[str] = mapped_column(String(100), nullable=False)
    airtable_table_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Field definitions ({"fields": [...]}) and display settings
    schema_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    settings_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)

    total_views: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    total_submissions: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow, nullable=False)

    owner: Mapped["User"] = relationship()


class FormSubmission(Base):
    """One respondent's answers plus their Airtable sync bookkeeping.

    Base/table ids are copied from the form at submission time so later form
    edits never retarget historical rows.
    """

    __tablename__ = "form_submissions"
    __table_args__ = (
        Index("idx_form_submissions_form_created", "form_id", "created_at"),
        Index("idx_form_submissions_status", "status"),
        Index("idx_form_submissions_synced", "is_synced"),
        Index("idx_form_submissions_record", "airtable_record_id"),
        Index("idx_form_submissions_email", "submitter_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    airtable_base_id: Mapped[str] = mapped_column(String(100), nullable=False)
    airtable_table_id: Mapped[str] = mapped_column(String(100), nullable=False)
    airtable_record_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # list[FieldResponse] as JSON; labels/types frozen at submission time
    responses_json: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    submitter_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    submitter_user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitter_referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitter_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitter_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_SUBMISSION_STATUS,
        server_default=text(f"'{DEFAULT_SUBMISSION_STATUS}'"),
        nullable=False,
    )

    # Sync bookkeeping. sync_attempts is only ever changed by an in-SQL increment.
    last_sync_attempt_at: Mapped[datetime | None] = mapped_column(nullable=True)
    sync_attempts: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    last_sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_synced: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )

    # Completion metadata
    time_to_complete: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    device_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    browser_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    completion_percentage: Mapped[float] = mapped_column(
        Float, default=100, server_default=text("100"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow, nullable=False)

    form: Mapped["Form"] = relationship()
    errors: Mapped[list["FormSubmissionError"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="FormSubmissionError.created_at",
    )


class FormSubmissionError(Base):
    """Append-only log of sync failures for a submission."""

    __tablename__ = "form_submission_errors"
    __table_args__ = (Index("idx_form_submission_errors_submission", "submission_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("form_submissions.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict | list | str | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    submission: Mapped["FormSubmission"] = relationship(back_populates="errors")
