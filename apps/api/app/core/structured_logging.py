"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    form_id: str | None = None,
    submission_id: str | None = None,
    owner_id: str | None = None,
    attempt: int | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict.

    Submitter email/name/ip never go in here.
    """
    context: dict[str, Any] = {}
    if form_id:
        context["form_id"] = form_id
    if submission_id:
        context["submission_id"] = submission_id
    if owner_id:
        context["owner_id"] = owner_id
    if attempt is not None:
        context["attempt"] = attempt
    if route:
        context["route"] = route
    return context
