"""Tests for the admin CLI."""

from click.testing import CliRunner

from app.cli import cli
from app.core.config import settings
from app.core.exceptions import SyncError
from app.services import submission_store


def test_retry_sync_sweep(db, make_submission, fake_airtable):
    submission = make_submission()

    result = CliRunner().invoke(cli, ["retry-sync"])

    assert result.exit_code == 0, result.output
    assert "1 candidates: 1 synced, 0 failed, 0 skipped" in result.output
    db.refresh(submission)
    assert submission.is_synced is True


def test_retry_sync_single_submission_past_ceiling(db, make_submission, fake_airtable):
    submission = make_submission()
    for _ in range(settings.MAX_SYNC_ATTEMPTS):
        submission_store.record_sync_attempt(db, submission.id, error="boom")
    fake_airtable.default = ("recManual", None)

    result = CliRunner().invoke(cli, ["retry-sync", "--submission-id", str(submission.id)])

    assert result.exit_code == 0, result.output
    assert "recManual" in result.output


def test_retry_sync_single_submission_failure(db, make_submission, fake_airtable):
    submission = make_submission()
    fake_airtable.default = (None, SyncError("Airtable API timeout"))

    result = CliRunner().invoke(cli, ["retry-sync", "--submission-id", str(submission.id)])

    assert result.exit_code == 1
    assert "Airtable API timeout" in result.output


def test_list_failed(db, make_submission):
    assert "No exhausted submissions" in CliRunner().invoke(cli, ["list-failed"]).output

    submission = make_submission()
    for _ in range(settings.MAX_SYNC_ATTEMPTS):
        submission_store.record_sync_attempt(db, submission.id, error="boom")

    result = CliRunner().invoke(cli, ["list-failed"])
    assert str(submission.id) in result.output
    assert f"attempts={settings.MAX_SYNC_ATTEMPTS}" in result.output
