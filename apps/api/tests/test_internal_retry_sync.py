"""Tests for the scheduled retry endpoint."""

from httpx import AsyncClient

from app.core.config import settings
from app.core.exceptions import SyncError

HEADERS = {"X-Internal-Secret": "test-internal-secret"}


async def test_rejects_wrong_secret(client: AsyncClient, fake_airtable):
    resp = await client.post("/internal/scheduled/retry-sync", headers={"X-Internal-Secret": "nope"})
    assert resp.status_code == 403


async def test_not_configured(client: AsyncClient, monkeypatch, fake_airtable):
    monkeypatch.setattr(settings, "INTERNAL_SECRET", "")

    resp = await client.post("/internal/scheduled/retry-sync", headers=HEADERS)
    assert resp.status_code == 501


async def test_sweep_retries_pending_submissions(client: AsyncClient, db, make_submission, fake_airtable):
    ok = make_submission()
    failing = make_submission()
    fake_airtable.results = [("recSweep", None), (None, SyncError("Airtable API timeout"))]

    resp = await client.post("/internal/scheduled/retry-sync", headers=HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {"candidates": 2, "synced": 1, "failed": 1, "skipped": 0}
    db.refresh(ok)
    db.refresh(failing)
    assert ok.airtable_record_id == "recSweep"
    assert failing.sync_attempts == 1
    assert failing.last_sync_error == "Airtable API timeout"


async def test_sweep_honours_limit(client: AsyncClient, db, make_submission, fake_airtable):
    make_submission()
    make_submission()

    resp = await client.post("/internal/scheduled/retry-sync?limit=1", headers=HEADERS)

    assert resp.json()["candidates"] == 1
    assert len(fake_airtable.calls) == 1
