"""Audit log service - append-only trail of domain events.

Recording is a side channel: a failed append is logged and returned as an
error value, never raised into the calling mutation.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assurance.core.structured_logging import build_log_context
from assurance.db.enums import AuditEventType
from assurance.db.models import AuditEvent

logger = logging.getLogger(__name__)


def record(
    db: Session,
    event_type: AuditEventType,
    actor: str | None,
    message: str,
) -> tuple[AuditEvent | None, str | None]:
    """
    Append one audit event in its own commit.

    Returns (event, None) on success or (None, error) on failure. On failure
    the session is rolled back; anything the caller committed earlier stays.
    """
    event = AuditEvent(type=event_type.value, actor=actor, message=message)
    try:
        db.add(event)
        db.commit()
        db.refresh(event)
    except (SQLAlchemyError, TypeError, ValueError) as exc:
        db.rollback()
        logger.warning(
            "Audit append failed for %s: %s",
            event_type.value,
            type(exc).__name__,
            extra=build_log_context(actor=actor),
        )
        return None, f"{type(exc).__name__}: {exc}"
    return event, None


def list_events(
    db: Session,
    event_type: AuditEventType | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[AuditEvent]:
    """List audit events, most recent first."""
    query = db.query(AuditEvent)
    if event_type:
        query = query.filter(AuditEvent.type == event_type.value)
    return (
        query.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
