"""
Notification fan-out - one notification row per eligible recipient.

Recipients come from the user directory under a named policy. Delivery is
best-effort and isolated per recipient: a failure for one recipient is
logged, rolled back and recorded in the FanOutResult, and the loop moves on.

Two delivery modes (NOTIFICATION_FANOUT_MODE):
- inline: rows are written sequentially inside the calling request
- queued: one notification_fanout job per recipient, processed by the worker
  with retries up to FANOUT_JOB_MAX_ATTEMPTS
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assurance.core.config import settings
from assurance.core.structured_logging import build_log_context
from assurance.db.enums import JobType, NotificationType, UserRole, UserStatus
from assurance.db.models import Notification, User
from assurance.services import job_service, notification_service, user_service

logger = logging.getLogger(__name__)

WELL_KNOWN_KEYS = ("title", "message", "type", "action", "url")


class RecipientPolicy(str, Enum):
    """Named recipient-set policies."""
    # active and logged in at least once
    ALL_ACTIVE = "all_active"
    ALL_ACTIVE_EXCLUDING = "all_active_excluding"
    # active, not DELETED, and REGISTERED or ADMIN
    REGISTERED_OR_ADMIN_EXCLUDING = "registered_or_admin_excluding"


@dataclass(frozen=True)
class RecipientSelector:
    policy: RecipientPolicy
    exclude: str | None = None

    @classmethod
    def all_active(cls) -> "RecipientSelector":
        return cls(RecipientPolicy.ALL_ACTIVE)

    @classmethod
    def all_active_excluding(cls, actor: str | None) -> "RecipientSelector":
        return cls(RecipientPolicy.ALL_ACTIVE_EXCLUDING, actor)

    @classmethod
    def registered_or_admin_excluding(cls, actor: str | None) -> "RecipientSelector":
        return cls(RecipientPolicy.REGISTERED_OR_ADMIN_EXCLUDING, actor)


@dataclass
class FanOutResult:
    """Outcome of one fan-out, consumed for logging only."""
    recipients: list[str] = field(default_factory=list)
    delivered: list[str] = field(default_factory=list)
    queued: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed


# =============================================================================
# Recipient selection
# =============================================================================


def _is_eligible(user: User, policy: RecipientPolicy) -> bool:
    if not user.active:
        return False
    if policy == RecipientPolicy.REGISTERED_OR_ADMIN_EXCLUDING:
        if user.status == UserStatus.DELETED.value:
            return False
        return (
            user.status == UserStatus.REGISTERED.value
            or user.role == UserRole.ADMIN.value
        )
    return user.last_login_at is not None


def select_recipients(db: Session, selector: RecipientSelector) -> list[str]:
    """Compute the recipient usernames for a selector, in directory order."""
    excluded = selector.exclude
    if selector.policy == RecipientPolicy.ALL_ACTIVE:
        excluded = None
    return [
        user.username
        for user in user_service.list_all(db)
        if _is_eligible(user, selector.policy) and user.username != excluded
    ]


# =============================================================================
# Payload handling
# =============================================================================


def split_payload(payload: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Split a payload into the five well-known fields and the extension map.

    Returns new dicts; the caller's mapping is left untouched.
    """
    core = {key: payload.get(key) for key in WELL_KNOWN_KEYS}
    metadata = {key: value for key, value in payload.items() if key not in WELL_KNOWN_KEYS}
    return core, metadata


def coerce_notification_type(raw_type: Any) -> NotificationType:
    if isinstance(raw_type, NotificationType):
        return raw_type
    if not raw_type:
        return NotificationType.SYSTEM
    try:
        return NotificationType(str(raw_type))
    except ValueError:
        logger.warning("Unknown notification type '%s'; defaulting to SYSTEM", raw_type)
        return NotificationType.SYSTEM


def deliver(
    db: Session,
    recipient: str,
    core: Mapping[str, Any],
    metadata: Mapping[str, Any] | None,
) -> Notification:
    """Write one notification for one recipient."""
    return notification_service.create_notification(
        db=db,
        user_id=recipient,
        type=coerce_notification_type(core.get("type")),
        title=core.get("title"),
        message=core.get("message"),
        action=core.get("action"),
        url=core.get("url"),
        metadata=dict(metadata) if metadata else None,
    )


# =============================================================================
# Fan-out
# =============================================================================


def fan_out(
    db: Session,
    selector: RecipientSelector,
    payload: Mapping[str, Any],
    event_key: str | None = None,
) -> FanOutResult:
    """
    Emit one notification per selected recipient.

    Never raises: directory and per-recipient failures end up in the result.
    `event_key` scopes the idempotency keys of queued jobs; a random key is
    used when absent.
    """
    result = FanOutResult()
    try:
        result.recipients = select_recipients(db, selector)
    except Exception as exc:
        db.rollback()
        result.error = f"{type(exc).__name__}: {exc}"
        logger.error("Recipient selection failed (%s): %s", selector.policy.value, type(exc).__name__)
        return result

    core, metadata = split_payload(payload)
    if settings.fanout_queued:
        _enqueue(db, result, core, metadata, event_key or uuid.uuid4().hex)
    else:
        _deliver_inline(db, result, core, metadata)

    if result.failed:
        logger.warning(
            "Fan-out %s: %s/%s recipients failed",
            core.get("type"),
            len(result.failed),
            len(result.recipients),
        )
    return result


def _deliver_inline(
    db: Session,
    result: FanOutResult,
    core: dict[str, Any],
    metadata: dict[str, Any],
) -> None:
    for recipient in result.recipients:
        try:
            deliver(db, recipient, core, metadata)
        except Exception as exc:
            db.rollback()
            result.failed[recipient] = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "Notification delivery failed: %s",
                type(exc).__name__,
                extra=build_log_context(recipient=recipient),
            )
            continue
        result.delivered.append(recipient)


def _enqueue(
    db: Session,
    result: FanOutResult,
    core: dict[str, Any],
    metadata: dict[str, Any],
    event_key: str,
) -> None:
    for recipient in result.recipients:
        idempotency_key = f"{JobType.NOTIFICATION_FANOUT.value}:{event_key}:{recipient}"
        try:
            job_service.schedule_job(
                db=db,
                job_type=JobType.NOTIFICATION_FANOUT,
                payload={"recipient": recipient, "notification": core, "metadata": metadata},
                idempotency_key=idempotency_key,
                max_attempts=settings.FANOUT_JOB_MAX_ATTEMPTS,
            )
        except IntegrityError:
            # Same event already queued for this recipient
            db.rollback()
            logger.info("Fan-out job already queued: %s", idempotency_key)
        except Exception as exc:
            db.rollback()
            result.failed[recipient] = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "Fan-out job scheduling failed: %s",
                type(exc).__name__,
                extra=build_log_context(recipient=recipient),
            )
            continue
        result.queued.append(recipient)
