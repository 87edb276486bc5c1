"""Case service - business logic for case lifecycle operations."""

import json
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assurance.core.config import settings
from assurance.core.structured_logging import build_log_context
from assurance.db.enums import AuditEventType, CaseStatus, CaseType, NotificationType
from assurance.db.models import Case
from assurance.schemas.case import CaseCreate, CaseUpdate
from assurance.services import audit_service, reference_service
from assurance.services.notification_fanout import RecipientSelector, fan_out

logger = logging.getLogger(__name__)


class CaseServiceError(Exception):
    """Base exception for case service errors."""

    pass


class InvalidActorError(CaseServiceError):
    """Actor is missing or blank."""

    pass


class CaseNotFoundError(CaseServiceError):
    """Case not found."""

    pass


class CasePermissionError(CaseServiceError):
    """Actor is not the creator of the case."""

    pass


class DuplicateReferenceError(CaseServiceError):
    """A caller-supplied reference is already used by another case."""

    pass


class ReferenceGenerationError(CaseServiceError):
    """Every generated reference collided with an existing one."""

    pass


# =============================================================================
# Reads
# =============================================================================


def list_cases(db: Session) -> list[Case]:
    return db.query(Case).order_by(Case.created_at.desc(), Case.id.desc()).all()


def list_by_creator(db: Session, creator: str) -> list[Case]:
    return (
        db.query(Case)
        .filter(Case.created_by == creator)
        .order_by(Case.created_at.desc(), Case.id.desc())
        .all()
    )


def get_case(db: Session, case_id: int) -> Case | None:
    return db.query(Case).filter(Case.id == case_id).first()


def get_case_by_reference(db: Session, reference: str) -> Case | None:
    return db.query(Case).filter(Case.reference == reference.strip()).first()


def count_cases(db: Session) -> int:
    return db.query(Case).count()


def _clean_actor(actor: str | None) -> str | None:
    """Actors are compared and stored trimmed; blank means no actor."""
    if actor is None or not actor.strip():
        return None
    return actor.strip()


def can_edit(db: Session, case_id: int, actor: str | None) -> bool:
    """Only the creator may edit; an unknown case or blank actor is never editable."""
    actor = _clean_actor(actor)
    if not actor:
        return False
    case = get_case(db, case_id)
    if not case:
        return False
    return case.created_by is not None and case.created_by == actor


def can_delete(db: Session, case_id: int, actor: str | None) -> bool:
    return can_edit(db, case_id, actor)


def get_permissions(db: Session, case_id: int, actor: str | None) -> dict[str, bool]:
    return {
        "can_edit": can_edit(db, case_id, actor),
        "can_delete": can_delete(db, case_id, actor),
    }


# =============================================================================
# Create
# =============================================================================


def _is_reference_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name == "uq_cases_reference":
        return True
    message = str(error.orig) if error.orig else str(error)
    return "uq_cases_reference" in message or "cases.reference" in message


def insert_case(
    db: Session,
    actor: str,
    data: CaseCreate,
) -> Case:
    """
    Persist a case, generating a reference when none was supplied.

    Generated references are retried up to REFERENCE_MAX_ATTEMPTS on a
    uniqueness conflict. A supplied reference that collides is not retried.
    """
    supplied = data.reference
    attempts = 1 if supplied else max(settings.REFERENCE_MAX_ATTEMPTS, 1)

    for attempt in range(attempts):
        case = Case(
            reference=supplied or reference_service.generate_reference(),
            type=data.type.value,
            status=data.status.value if data.status else None,
            data_json=data.data_json,
            created_by=actor,
        )
        db.add(case)
        try:
            db.commit()
            db.refresh(case)
            return case
        except IntegrityError as exc:
            db.rollback()
            if case in db:
                db.expunge(case)
            if not _is_reference_conflict(exc):
                raise
            if supplied:
                raise DuplicateReferenceError(supplied) from exc
            logger.warning(
                "Reference collision on attempt %s/%s",
                attempt + 1,
                attempts,
                extra=build_log_context(actor=actor, reference=case.reference),
            )

    raise ReferenceGenerationError(f"No free reference after {attempts} attempts")


def create_case(db: Session, actor: str | None, data: CaseCreate) -> Case:
    """
    Create a case on behalf of `actor`.

    Persists first; the CASE_CREATED audit entry and the broadcast to every
    active, ever-logged-in user are side channels that cannot fail the create.
    """
    actor = _clean_actor(actor)
    if not actor:
        raise InvalidActorError("Actor is required to create a case")

    case = insert_case(db, actor, data)
    log_context = build_log_context(actor=actor, case_id=case.id, reference=case.reference)
    logger.info("Case created", extra=log_context)

    _, error = audit_service.record(
        db,
        AuditEventType.CASE_CREATED,
        actor,
        f"Création dossier ({case.type})",
    )
    if error:
        logger.warning("Case created without audit entry: %s", error, extra=log_context)

    fan_out(
        db,
        RecipientSelector.all_active(),
        {
            "title": "📁 Nouveau dossier créé",
            "message": (
                f"Un nouveau dossier d'enquête a été créé par {actor} "
                f"(Référence: {case.reference})"
            ),
            "type": NotificationType.CASE_CREATED.value,
            "action": "VIEW_CASE",
            "url": "/dossiers",
            "caseId": case.id,
            "caseReference": case.reference,
            "creator": actor,
        },
        event_key=f"case-created:{case.id}",
    )
    return case


def create_case_for_reference(
    db: Session,
    reference: str,
    creator: str,
    data_json: str,
) -> Case:
    """
    Auto-create a minimal case carrying an externally supplied reference.

    Used by report correspondence resolution. No broadcast is sent.
    """
    case = insert_case(
        db,
        creator,
        CaseCreate(
            reference=reference,
            type=CaseType.ENQUETE,
            status=CaseStatus.SOUS_ENQUETE,
            data_json=data_json,
        ),
    )
    _, error = audit_service.record(
        db,
        AuditEventType.CASE_CREATED,
        creator,
        f"Dossier créé automatiquement: {reference}",
    )
    if error:
        logger.warning(
            "Auto-created case without audit entry: %s",
            error,
            extra=build_log_context(actor=creator, case_id=case.id, reference=reference),
        )
    return case


# =============================================================================
# Update / Delete
# =============================================================================


def _require_creator(db: Session, case_id: int, actor: str | None) -> Case:
    case = get_case(db, case_id)
    if not case:
        raise CaseNotFoundError(f"Case {case_id} not found")
    if not actor or case.created_by != actor:
        raise CasePermissionError("Only the creator of the case may modify it")
    return case


def case_title(case: Case) -> str:
    """Readable title: payload `title`, then `caseTitle`, else the reference."""
    if case.data_json and case.data_json.strip():
        try:
            payload = json.loads(case.data_json)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            for key in ("title", "caseTitle"):
                value = payload.get(key)
                if value is not None and str(value).strip():
                    return str(value)
    return case.reference


def update_case(db: Session, case_id: int, actor: str | None, data: CaseUpdate) -> Case:
    """
    Apply a status and/or payload patch. Creator only.

    A status-change notification goes to every active, ever-logged-in user
    except the actor, only when both old and new status are set and differ.
    """
    actor = _clean_actor(actor)
    case = _require_creator(db, case_id, actor)

    old_status = case.status
    if data.status is not None:
        case.status = data.status.value
    if data.data_json is not None:
        case.data_json = data.data_json
    db.commit()
    db.refresh(case)

    new_status = case.status
    if old_status is not None and new_status is not None and old_status != new_status:
        title = case_title(case)
        logger.info(
            "Case status %s -> %s",
            old_status,
            new_status,
            extra=build_log_context(actor=actor, case_id=case.id, reference=case.reference),
        )
        fan_out(
            db,
            RecipientSelector.all_active_excluding(actor),
            {
                "title": "📁 Statut du dossier mis à jour",
                "message": f"Le dossier \"{title}\" est passé de {old_status} à {new_status}.",
                "type": NotificationType.CASE_STATUS_CHANGED.value,
                "action": "VIEW_CASE",
                "url": "/dossiers",
                "caseId": case.id,
                "caseReference": case.reference,
                "caseTitle": title,
            },
        )
    return case


def delete_case(db: Session, case_id: int, actor: str | None) -> None:
    """Delete a case. Creator only; no audit entry and no notification."""
    actor = _clean_actor(actor)
    case = _require_creator(db, case_id, actor)
    db.delete(case)
    db.commit()
    logger.info("Case deleted", extra=build_log_context(actor=actor, case_id=case_id))


# =============================================================================
# Duplicate reconciliation
# =============================================================================


def cleanup_duplicate_cases(db: Session) -> int:
    """
    Delete cases whose payload duplicates a more recent case.

    Cases are grouped by exact `data_json` (missing payload counts as "").
    In each group the most recent case survives; ties on created_at keep
    the highest id. Returns the number of cases deleted.
    """
    groups: dict[str, list[Case]] = {}
    for case in db.query(Case).all():
        groups.setdefault(case.data_json or "", []).append(case)

    deleted = 0
    for duplicates in groups.values():
        if len(duplicates) < 2:
            continue
        duplicates.sort(key=lambda c: (c.created_at, c.id), reverse=True)
        for case in duplicates[1:]:
            db.delete(case)
            deleted += 1

    db.commit()
    logger.info("Duplicate cleanup removed %s cases", deleted)
    return deleted
