"""CLI tools for form intake administration."""

import asyncio
from uuid import UUID

import click

from app.core.config import settings
from app.core.exceptions import FormSubmissionError
from app.db.session import SessionLocal
from app.services import submission_store, sync_service


@click.group()
def cli():
    """Airform CLI tools."""
    pass


@cli.command("retry-sync")
@click.option("--submission-id", type=click.UUID, default=None, help="Retry one submission (manual, ignores the attempt ceiling)")
@click.option("--limit", type=int, default=None, help="Max submissions per sweep")
def retry_sync(submission_id: UUID | None, limit: int | None):
    """
    Retry Airtable sync for unsynced submissions.

    Without --submission-id, runs one automatic sweep over retry candidates.

    Example:
        python -m app.cli retry-sync --limit 50
    """
    db = SessionLocal()
    try:
        if submission_id:
            try:
                result = asyncio.run(sync_service.retry_submission(db, submission_id))
            except FormSubmissionError as e:
                click.echo(f"❌ {e.message}")
                raise SystemExit(1)
            if result.synced:
                click.echo(f"✓ Synced {submission_id} → {result.record_id}")
            else:
                click.echo(f"❌ Sync failed for {submission_id}: {result.error}")
                raise SystemExit(1)
            return

        sweep = asyncio.run(
            sync_service.retry_pending_submissions(db, limit=limit or settings.WORKER_BATCH_SIZE)
        )
        click.echo(
            f"✓ {sweep.candidates} candidates: {sweep.synced} synced, "
            f"{sweep.failed} failed, {sweep.skipped} skipped"
        )
    finally:
        db.close()


@cli.command("list-failed")
@click.option("--form-id", type=click.UUID, default=None, help="Only this form")
@click.option("--limit", type=int, default=100, show_default=True)
def list_failed(form_id: UUID | None, limit: int):
    """List submissions that exhausted automatic retries."""
    db = SessionLocal()
    try:
        rows = submission_store.find_exhausted(db, form_id=form_id, limit=limit)
        if not rows:
            click.echo("No exhausted submissions")
            return
        for submission in rows:
            click.echo(
                f"{submission.id}  form={submission.form_id}  "
                f"attempts={submission.sync_attempts}  error={submission.last_sync_error or '-'}"
            )
    finally:
        db.close()


if __name__ == "__main__":
    cli()
