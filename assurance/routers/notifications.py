"""
Notifications Router - per-user in-app notification feed.

State changes answer {"success": false} rather than 404 when the notification
is missing or owned by someone else.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from assurance.core.deps import get_db, require_csrf_header
from assurance.db.enums import NotificationType
from assurance.schemas.notification import (
    MutationResult,
    NotificationRead,
    UnreadCountResponse,
)
from assurance.services import notification_service

router = APIRouter()


@router.get("/user/{user_id}", response_model=list[NotificationRead])
def list_notifications(
    user_id: str,
    type: NotificationType | None = Query(None),
    db: Session = Depends(get_db),
):
    """Active (non-trashed) notifications, newest first."""
    return notification_service.get_notifications(db, user_id, notification_type=type)


@router.get("/user/{user_id}/unread", response_model=list[NotificationRead])
def list_unread(user_id: str, db: Session = Depends(get_db)):
    return notification_service.get_unread_notifications(db, user_id)


@router.get("/user/{user_id}/unread/count", response_model=UnreadCountResponse)
def get_unread_count(user_id: str, db: Session = Depends(get_db)):
    """Get unread notification count (for polling)."""
    return UnreadCountResponse(count=notification_service.count_unread(db, user_id))


@router.get("/user/{user_id}/trash", response_model=list[NotificationRead])
def list_trash(user_id: str, db: Session = Depends(get_db)):
    return notification_service.get_trashed_notifications(db, user_id)


@router.post(
    "/{notification_id}/read",
    response_model=MutationResult,
    dependencies=[Depends(require_csrf_header)],
)
def mark_read(notification_id: int, user_id: str = Query(...), db: Session = Depends(get_db)):
    return MutationResult(success=notification_service.mark_read(db, notification_id, user_id))


@router.post(
    "/user/{user_id}/read-all",
    response_model=MutationResult,
    dependencies=[Depends(require_csrf_header)],
)
def mark_all_read(user_id: str, db: Session = Depends(get_db)):
    count = notification_service.mark_all_read(db, user_id)
    return MutationResult(success=True, count=count)


@router.delete(
    "/user/{user_id}/all",
    response_model=MutationResult,
    dependencies=[Depends(require_csrf_header)],
)
def trash_all(user_id: str, db: Session = Depends(get_db)):
    """Soft-delete every active notification of the user."""
    count = notification_service.trash_all(db, user_id)
    return MutationResult(success=True, count=count)


@router.delete(
    "/cleanup",
    response_model=MutationResult,
    dependencies=[Depends(require_csrf_header)],
)
def cleanup_old_notifications(db: Session = Depends(get_db)):
    """Purge notifications past the retention window, whatever their state."""
    count = notification_service.purge_old_notifications(db)
    return MutationResult(success=True, count=count)


@router.delete(
    "/{notification_id}",
    response_model=MutationResult,
    dependencies=[Depends(require_csrf_header)],
)
def trash_notification(
    notification_id: int,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    return MutationResult(
        success=notification_service.trash_notification(db, notification_id, user_id)
    )


@router.post(
    "/{notification_id}/restore",
    response_model=MutationResult,
    dependencies=[Depends(require_csrf_header)],
)
def restore_notification(
    notification_id: int,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    return MutationResult(
        success=notification_service.restore_notification(db, notification_id, user_id)
    )
