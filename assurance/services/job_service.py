"""
Job service - the persistent queue behind queued notification fan-out.

Lifecycle: pending -> running -> completed, or back to pending after a
failure until `max_attempts` is reached, then failed.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from assurance.db.base import utcnow
from assurance.db.enums import JobStatus, JobType
from assurance.db.models import Job


def schedule_job(
    db: Session,
    job_type: JobType,
    payload: dict,
    run_at: datetime | None = None,
    idempotency_key: str | None = None,
    max_attempts: int = 3,
) -> Job:
    """
    Enqueue a job, due now unless `run_at` is given.

    A reused idempotency_key violates `uq_job_idempotency` on commit; the
    IntegrityError is left to the caller.
    """
    job = Job(
        job_type=job_type.value,
        payload=payload,
        run_at=run_at or utcnow(),
        status=JobStatus.PENDING.value,
        max_attempts=max_attempts,
        idempotency_key=idempotency_key,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get_pending_jobs(db: Session, limit: int = 10) -> list[Job]:
    """Due pending jobs, oldest run_at first."""
    return (
        db.query(Job)
        .filter(Job.status == JobStatus.PENDING.value, Job.run_at <= utcnow())
        .order_by(Job.run_at, Job.id)
        .limit(limit)
        .all()
    )


def _save(db: Session, job: Job) -> Job:
    db.commit()
    db.refresh(job)
    return job


def mark_job_running(db: Session, job: Job) -> Job:
    job.status = JobStatus.RUNNING.value
    job.attempts += 1
    return _save(db, job)


def mark_job_completed(db: Session, job: Job) -> Job:
    job.status = JobStatus.COMPLETED.value
    job.completed_at = utcnow()
    job.last_error = None
    return _save(db, job)


def mark_job_failed(db: Session, job: Job, error: str) -> Job:
    """Record the error; requeue while attempts remain."""
    job.last_error = error
    job.status = (
        JobStatus.PENDING.value
        if job.attempts < job.max_attempts
        else JobStatus.FAILED.value
    )
    return _save(db, job)
