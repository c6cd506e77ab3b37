"""SQLAlchemy ORM models."""

from app.db.models.auth import User
from app.db.models.forms import Form, FormSubmission, FormSubmissionError

__all__ = [
    "Form",
    "FormSubmission",
    "FormSubmissionError",
    "User",
]
