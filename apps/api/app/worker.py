"""
Background worker that retries unsynced submissions.

Usage:
    python -m app.worker

Polls the retry scanner every WORKER_POLL_INTERVAL seconds and gives each
candidate one automatic Airtable attempt. For production, run this as a
separate process (e.g., systemd service, Docker container).
"""

import asyncio
import logging

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.session import SessionLocal
from app.services import sync_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = settings.WORKER_POLL_INTERVAL
BATCH_SIZE = settings.WORKER_BATCH_SIZE


async def run_once() -> None:
    """Run a single retry sweep."""
    with SessionLocal() as db:
        result = await sync_service.retry_pending_submissions(db, limit=BATCH_SIZE)
    if result.candidates:
        logger.info(
            "Retry sweep: %s candidates, %s synced, %s failed, %s skipped",
            result.candidates,
            result.synced,
            result.failed,
            result.skipped,
        )


async def worker_loop() -> None:
    """Main worker loop - polls for and retries unsynced submissions."""
    logger.info(
        f"Worker starting (poll interval: {POLL_INTERVAL_SECONDS}s, batch size: {BATCH_SIZE})"
    )

    while True:
        try:
            await run_once()
        except Exception as e:
            logger.error(f"Error in worker loop: {e}")

        await asyncio.sleep(POLL_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception("Worker crashed", extra=build_log_context(route="worker"))
        raise


if __name__ == "__main__":
    main()
