"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron when the polling worker is not deployed.
"""
import logging

from fastapi import APIRouter, Header, HTTPException

from app.core.config import settings
from app.db.session import SessionLocal
from app.schemas.submissions import RetrySweepResponse
from app.services import sync_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


@router.post("/retry-sync", response_model=RetrySweepResponse)
async def retry_pending_sync(limit: int | None = None, x_internal_secret: str = Header(...)):
    """
    Sweep unsynced submissions still under the attempt ceiling.

    Each candidate gets exactly one automatic attempt per sweep.
    """
    verify_internal_secret(x_internal_secret)

    with SessionLocal() as db:
        result = await sync_service.retry_pending_submissions(
            db, limit=limit or settings.WORKER_BATCH_SIZE
        )

    logger.info("internal_retry_sync_done", extra=result.model_dump())
    return result
