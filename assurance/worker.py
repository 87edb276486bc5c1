"""
Background worker for processing queued jobs.

Usage:
    python -m assurance.worker

The worker polls for pending jobs and processes them. It is only needed when
NOTIFICATION_FANOUT_MODE=queued. For production, run it as a separate process.
"""

import asyncio
import logging

from sqlalchemy.orm import Session

from assurance.core.config import settings
from assurance.core.structured_logging import build_log_context, configure_logging
from assurance.db.session import SessionLocal
from assurance.jobs.registry import resolve_job_handler
from assurance.services import job_service

logger = logging.getLogger(__name__)


async def process_job(db: Session, job) -> None:
    """Process a single job based on its type."""
    logger.info(
        "Processing job %s (type=%s, attempt=%s)",
        job.id,
        job.job_type,
        job.attempts,
    )
    handler = resolve_job_handler(job.job_type)
    await handler(db, job)


async def run_pending_jobs(db: Session, limit: int | None = None) -> tuple[int, int]:
    """
    Run one batch of due jobs.

    A failing job is rolled back and put back to pending until it reaches
    max_attempts. Returns (completed, failed).
    """
    completed = failed = 0
    jobs = job_service.get_pending_jobs(db, limit=limit or settings.WORKER_BATCH_SIZE)
    if jobs:
        logger.info("Found %s pending jobs", len(jobs))

    for job in jobs:
        try:
            job_service.mark_job_running(db, job)
            await process_job(db, job)
            job_service.mark_job_completed(db, job)
            completed += 1
        except Exception as e:
            db.rollback()
            job_service.mark_job_failed(db, job, f"{type(e).__name__}: {e}")
            failed += 1
            logger.error(
                "Job %s failed: %s",
                job.id,
                type(e).__name__,
                extra=build_log_context(job_id=job.id),
            )
    return completed, failed


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        "Worker starting (poll interval: %ss, batch size: %s)",
        settings.WORKER_POLL_INTERVAL,
        settings.WORKER_BATCH_SIZE,
    )
    if not settings.fanout_queued:
        logger.warning("NOTIFICATION_FANOUT_MODE is inline - no fan-out jobs will be queued")

    while True:
        with SessionLocal() as db:
            try:
                await run_pending_jobs(db)
            except Exception as e:
                logger.error("Error in worker loop: %s", type(e).__name__)

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL)


def main() -> None:
    """Entry point for the worker."""
    configure_logging()
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")


if __name__ == "__main__":
    main()
