"""Job handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

from assurance.db.enums import JobType
from assurance.jobs.handlers import notifications

JobHandler = Callable[[object, object], Awaitable[None]]

JOB_HANDLERS: Mapping[str, JobHandler] = {
    JobType.NOTIFICATION_FANOUT.value: notifications.process_notification_fanout,
}


def resolve_job_handler(job_type: str) -> JobHandler:
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise ValueError(f"Unknown job type: {job_type}")
    return handler
