"""
Notification Service - in-app notification store.

Each row belongs to one recipient and moves through an explicit state:

    unread -> read -> trashed -> (purged)
    trashed -> unread | read   (restore keeps read-ness via read_at)

Transitions report not-found / not-owned as False instead of raising.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from assurance.core.config import settings
from assurance.db.base import utcnow
from assurance.db.enums import NotificationState, NotificationType
from assurance.db.models import Notification

logger = logging.getLogger(__name__)

ACTIVE_STATES = (NotificationState.UNREAD.value, NotificationState.READ.value)


def serialize_metadata(metadata: dict[str, Any] | None) -> str | None:
    if not metadata:
        return None
    return json.dumps(metadata, sort_keys=True, default=str)


def parse_metadata(raw: str | None) -> dict[str, Any]:
    """Decode the stored metadata column; unreadable values decode to {}."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("Unreadable notification metadata: %r", raw[:80])
        return {}
    return value if isinstance(value, dict) else {}


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    user_id: str,
    type: NotificationType,
    title: str | None,
    message: str | None = None,
    action: str | None = None,
    url: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    """Create an unread notification for one recipient."""
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        action=action,
        url=url,
        metadata_json=serialize_metadata(metadata),
        state=NotificationState.UNREAD.value,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def _owned(db: Session, notification_id: int, user_id: str) -> Notification | None:
    return db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()


def get_notifications(
    db: Session,
    user_id: str,
    notification_type: NotificationType | None = None,
) -> list[Notification]:
    """Get a user's active (non-trashed) notifications, newest first."""
    query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.state.in_(ACTIVE_STATES),
    )
    if notification_type:
        query = query.filter(Notification.type == notification_type.value)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def get_unread_notifications(db: Session, user_id: str) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(
            Notification.user_id == user_id,
            Notification.state == NotificationState.UNREAD.value,
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


def count_unread(db: Session, user_id: str) -> int:
    """Count active-unread notifications (trashed rows never count)."""
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.state == NotificationState.UNREAD.value,
    ).count()


def count_all_unread(db: Session) -> int:
    return db.query(Notification).filter(
        Notification.state == NotificationState.UNREAD.value,
    ).count()


def get_trashed_notifications(db: Session, user_id: str) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(
            Notification.user_id == user_id,
            Notification.state == NotificationState.TRASHED.value,
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


# =============================================================================
# State transitions
# =============================================================================


def mark_read(db: Session, notification_id: int, user_id: str) -> bool:
    """
    Mark a notification as read.

    Returns False if it does not exist or belongs to someone else. A trashed
    notification gets read_at stamped but stays in the trash.
    """
    notification = _owned(db, notification_id, user_id)
    if not notification:
        return False

    if notification.read_at is None:
        notification.read_at = utcnow()
    if notification.state == NotificationState.UNREAD.value:
        notification.state = NotificationState.READ.value
    db.commit()
    return True


def mark_all_read(db: Session, user_id: str) -> int:
    """Mark every unread notification as read. Returns count updated."""
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.state == NotificationState.UNREAD.value,
    ).update(
        {"state": NotificationState.READ.value, "read_at": utcnow()},
        synchronize_session=False,
    )
    db.commit()
    return count


def trash_notification(db: Session, notification_id: int, user_id: str) -> bool:
    """Soft-delete a notification. Only the owner may trash it."""
    notification = _owned(db, notification_id, user_id)
    if not notification:
        return False
    notification.state = NotificationState.TRASHED.value
    db.commit()
    return True


def restore_notification(db: Session, notification_id: int, user_id: str) -> bool:
    """
    Move a trashed notification back to the active lists.

    It returns to `read` if it had been read before trashing, else `unread`.
    Restoring a notification that is not trashed fails.
    """
    notification = _owned(db, notification_id, user_id)
    if not notification or notification.state != NotificationState.TRASHED.value:
        return False
    notification.state = (
        NotificationState.READ.value
        if notification.read_at is not None
        else NotificationState.UNREAD.value
    )
    db.commit()
    return True


def trash_all(db: Session, user_id: str) -> int:
    """Soft-delete all of a user's active notifications. Returns count trashed."""
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.state.in_(ACTIVE_STATES),
    ).update(
        {"state": NotificationState.TRASHED.value},
        synchronize_session=False,
    )
    db.commit()
    return count


# =============================================================================
# Retention
# =============================================================================


def purge_old_notifications(db: Session, now: datetime | None = None) -> int:
    """
    Hard-delete every notification older than the retention window.

    Age is the only criterion: read, unread and trashed rows go alike.
    """
    cutoff = (now or utcnow()) - timedelta(days=settings.NOTIFICATION_RETENTION_DAYS)
    count = db.query(Notification).filter(
        Notification.created_at < cutoff,
    ).delete(synchronize_session=False)
    db.commit()
    logger.info("Purged %s notifications older than %s", count, cutoff.isoformat())
    return count
