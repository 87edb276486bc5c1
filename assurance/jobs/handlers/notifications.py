"""Notification job handlers."""

from __future__ import annotations

import logging

from assurance.core.structured_logging import build_log_context
from assurance.services import notification_fanout

logger = logging.getLogger(__name__)


async def process_notification_fanout(db, job) -> None:
    """Create the in-app notification of one queued fan-out recipient."""
    payload = job.payload or {}
    recipient = payload.get("recipient")
    if not recipient:
        logger.warning("Fan-out job %s has no recipient; skipping", job.id)
        return

    notification = notification_fanout.deliver(
        db,
        recipient,
        payload.get("notification") or {},
        payload.get("metadata") or {},
    )
    logger.info(
        "Created notification %s",
        notification.id,
        extra=build_log_context(recipient=recipient, job_id=job.id, notification_id=notification.id),
    )
