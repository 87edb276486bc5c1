import pytest

from assurance.core.config import settings
from assurance.db.enums import JobStatus, JobType
from assurance.db.models import Job, Notification
from assurance.jobs.registry import resolve_job_handler
from assurance.schemas.case import CaseCreate
from assurance.services import case_service, job_service, notification_fanout
from assurance.worker import run_pending_jobs


@pytest.fixture
def queued(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATION_FANOUT_MODE", "queued")


async def test_queued_case_broadcast_is_delivered_by_worker(db, directory, queued):
    case = case_service.create_case(db, "alice", CaseCreate())

    assert db.query(Notification).count() == 0
    assert db.query(Job).count() == 3

    completed, failed = await run_pending_jobs(db)

    assert (completed, failed) == (3, 0)
    assert sorted(n.user_id for n in db.query(Notification).all()) == ["alice", "bob", "carol"]
    assert {j.status for j in db.query(Job).all()} == {JobStatus.COMPLETED.value}
    assert db.query(Notification).first().message.endswith(f"(Référence: {case.reference})")


async def test_failing_job_is_retried_until_failed(db, make_user, queued, monkeypatch):
    make_user("alice")
    case_service.create_case(db, "alice", CaseCreate())

    def broken_deliver(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(notification_fanout, "deliver", broken_deliver)

    for attempt in range(1, settings.FANOUT_JOB_MAX_ATTEMPTS + 1):
        completed, failed = await run_pending_jobs(db)
        assert (completed, failed) == (0, 1)
        job = db.query(Job).one()
        assert job.attempts == attempt

    assert job.status == JobStatus.FAILED.value
    assert "RuntimeError" in job.last_error
    assert await run_pending_jobs(db) == (0, 0)


async def test_job_without_recipient_completes(db):
    job_service.schedule_job(db, JobType.NOTIFICATION_FANOUT, {"notification": {"title": "x"}})

    assert await run_pending_jobs(db) == (1, 0)
    assert db.query(Notification).count() == 0


def test_unknown_job_type_is_rejected():
    with pytest.raises(ValueError):
        resolve_job_handler("not_a_job")
