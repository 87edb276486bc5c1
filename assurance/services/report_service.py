"""Report service - business logic for report lifecycle operations."""

import json
import logging
import re

from sqlalchemy import func
from sqlalchemy.orm import Session

from assurance.core.config import settings
from assurance.core.structured_logging import build_log_context
from assurance.db.enums import AuditEventType, DEFAULT_REPORT_STATUS, NotificationType
from assurance.db.models import Case, Report
from assurance.schemas.report import ReportCreate, ReportUpdate
from assurance.services import audit_service, case_service, report_file_service
from assurance.services.notification_fanout import RecipientSelector, fan_out

logger = logging.getLogger(__name__)


class ReportServiceError(Exception):
    """Base exception for report service errors."""

    pass


class ReportValidationError(ReportServiceError):
    """A mandatory field is missing or blank."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ReportNotFoundError(ReportServiceError):
    """Report not found."""

    pass


class ReportPermissionError(ReportServiceError):
    """Actor is not the creator of the report."""

    pass


# Checked in this order; the first blank field is reported.
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "Le titre du rapport est obligatoire"),
    ("beneficiaries", "Au moins un bénéficiaire est obligatoire"),
    ("insureds", "Au moins un assuré est obligatoire"),
    ("initiator", "L'initiateur est obligatoire"),
    ("subscriber", "Le souscripteur est obligatoire"),
    ("case_id", "Le numéro de dossier est obligatoire"),
)


# Signed 32-bit primary key on cases.id
MIN_CASE_ID, MAX_CASE_ID = -(2**31), 2**31 - 1
CASE_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _clean_actor(actor: str | None) -> str | None:
    return None if _blank(actor) else actor.strip()


# =============================================================================
# Reads
# =============================================================================


def list_reports(db: Session) -> list[Report]:
    return db.query(Report).order_by(Report.created_at.desc(), Report.id.desc()).all()


def get_report(db: Session, report_id: int) -> Report | None:
    return db.query(Report).filter(Report.id == report_id).first()


def list_report_ids_by_owner(db: Session, owner: str) -> list[int]:
    rows = db.query(Report.id).filter(Report.created_by == owner).order_by(Report.id).all()
    return [row.id for row in rows]


def count_reports(db: Session) -> int:
    return db.query(Report).count()


def count_by_creator(db: Session) -> list[tuple[str | None, int]]:
    """Report counts grouped by creator, largest first."""
    rows = (
        db.query(Report.created_by, func.count(Report.id))
        .group_by(Report.created_by)
        .order_by(func.count(Report.id).desc(), Report.created_by)
        .all()
    )
    return [(created_by, count) for created_by, count in rows]


def recent_reports(db: Session, limit: int = 10) -> list[Report]:
    return (
        db.query(Report)
        .order_by(Report.created_at.desc(), Report.id.desc())
        .limit(limit)
        .all()
    )


def can_edit(db: Session, report_id: int, actor: str | None) -> bool:
    actor = _clean_actor(actor)
    report = get_report(db, report_id)
    if not report or not actor:
        return False
    return report.created_by is not None and report.created_by == actor


def can_delete(db: Session, report_id: int, actor: str | None) -> bool:
    return can_edit(db, report_id, actor)


def get_permissions(db: Session, report_id: int, actor: str | None) -> dict[str, bool]:
    return {
        "can_edit": can_edit(db, report_id, actor),
        "can_delete": can_delete(db, report_id, actor),
    }


# =============================================================================
# Validation & case correspondence
# =============================================================================


def validate_required_fields(data: ReportCreate) -> None:
    """Raise ReportValidationError naming the first blank mandatory field."""
    for field, message in REQUIRED_FIELDS:
        if _blank(getattr(data, field)):
            raise ReportValidationError(field, message)


def case_payload_from_report(data: ReportCreate) -> str:
    """Synthesize the payload of an auto-created case from report identities."""
    return json.dumps(
        {
            "beneficiaire_nom": data.beneficiary or "",
            "assure_nom": data.insured or "",
            "souscripteur_nom": data.subscriber or "",
            "initiateur": data.initiator or "",
            "titre_rapport": data.title or "",
        },
        ensure_ascii=False,
    )


def check_field_correspondence(data: ReportCreate, case_payload: str) -> list[str]:
    """
    Compare report identities against a case payload.

    Advisory: returns the names of fields whose value does not appear in the
    payload (case-insensitive) and logs them. Never blocks creation.
    """
    haystack = case_payload.lower()
    unmatched = [
        field
        for field in ("beneficiary", "insured", "subscriber")
        if getattr(data, field) and getattr(data, field).lower() not in haystack
    ]
    if unmatched:
        logger.info("Report '%s' does not match case payload on %s", data.title, ", ".join(unmatched))
    return unmatched


def parse_case_id(raw: str) -> int | None:
    """
    Return `raw` as a case id when it is a plain ASCII integer within the id
    column range, else None (the value is then a reference).
    """
    if not CASE_ID_PATTERN.fullmatch(raw):
        return None
    value = int(raw)
    if not MIN_CASE_ID <= value <= MAX_CASE_ID:
        return None
    return value


def resolve_case_correspondence(
    db: Session,
    data: ReportCreate,
    creator: str | None = None,
) -> Case | None:
    """
    Find the case a report points at, auto-creating it for unknown references.

    A numeric case_id is looked up by id (no auto-create when missing). Any
    other value is a reference; an unknown reference gets a minimal case whose
    creator is `creator`, else the report's created_by, else the system actor.
    """
    raw = (data.case_id or "").strip()
    if not raw:
        return None

    numeric_id = parse_case_id(raw)
    if numeric_id is not None:
        case = case_service.get_case(db, numeric_id)
    else:
        case = case_service.get_case_by_reference(db, raw)
        if case is None:
            owner = next(
                (c.strip() for c in (creator, data.created_by) if not _blank(c)),
                settings.SYSTEM_ACTOR,
            )
            case = case_service.create_case_for_reference(
                db, raw, owner, case_payload_from_report(data)
            )
            logger.info(
                "Auto-created case for report",
                extra=build_log_context(actor=owner, case_id=case.id, reference=raw),
            )
            return case

    if case is not None and case.data_json:
        check_field_correspondence(data, case.data_json)
    return case


# =============================================================================
# Create / Update / Delete
# =============================================================================


def _audit(db: Session, event_type: AuditEventType, actor: str, message: str, report_id: int) -> None:
    if event_type != AuditEventType.REPORT_CREATED and not settings.AUDIT_DISTINCT_REPORT_EVENTS:
        event_type = AuditEventType.REPORT_CREATED
    _, error = audit_service.record(db, event_type, actor, message)
    if error:
        logger.warning(
            "Report change without audit entry: %s",
            error,
            extra=build_log_context(actor=actor, report_id=report_id),
        )


def _insert_report(db: Session, data: ReportCreate, created_by: str | None) -> Report:
    report = Report(
        title=data.title.strip(),
        beneficiary=data.beneficiary,
        beneficiaries=data.beneficiaries,
        insured=data.insured,
        insureds=data.insureds,
        initiator=data.initiator,
        subscriber=data.subscriber,
        case_id=data.case_id.strip(),
        status=(data.status or DEFAULT_REPORT_STATUS).value,
        created_by=created_by,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


def _broadcast_created(db: Session, report: Report, creator: str, creator_label: str) -> None:
    fan_out(
        db,
        RecipientSelector.all_active(),
        {
            "title": "📄 Nouveau rapport créé",
            "message": f"Un nouveau rapport a été créé par {creator_label} (Titre: {report.title})",
            "type": NotificationType.REPORT_CREATED.value,
            "action": "VIEW_REPORT",
            "url": "/rapports",
            "reportId": report.id,
            "reportTitle": report.title,
            "creator": creator,
        },
        event_key=f"report-created:{report.id}",
    )


def create_report(db: Session, data: ReportCreate, created_by: str | None) -> Report:
    """
    Validate, resolve the case, persist, then audit and broadcast.

    Audit and broadcast failures are logged and never fail the create.
    """
    validate_required_fields(data)
    created_by = _clean_actor(created_by)
    resolve_case_correspondence(db, data, creator=created_by)

    report = _insert_report(db, data, created_by)
    actor = created_by or settings.SYSTEM_ACTOR
    logger.info("Report created", extra=build_log_context(actor=actor, report_id=report.id))

    _audit(db, AuditEventType.REPORT_CREATED, actor, f"Rapport créé: \"{report.title}\"", report.id)
    _broadcast_created(db, report, actor, actor)
    return report


def create_report_with_file(db: Session, data: ReportCreate, has_file: bool = False) -> Report:
    """
    Create a report attributed to the system actor (upload endpoint).

    The uploaded file is optional: `has_file` is accepted but not enforced.
    The file itself is stored by the caller via report_file_service.
    """
    validate_required_fields(data)
    resolve_case_correspondence(db, data)

    created_by = _clean_actor(data.created_by)
    report = _insert_report(db, data, created_by)
    system = settings.SYSTEM_ACTOR
    logger.info(
        "Report created via upload (file=%s)",
        has_file,
        extra=build_log_context(actor=system, report_id=report.id),
    )

    _audit(db, AuditEventType.REPORT_CREATED, system, f"Rapport créé: \"{report.title}\"", report.id)
    _broadcast_created(db, report, system, "le système")
    return report


def _require_creator(db: Session, report_id: int, actor: str | None) -> Report:
    report = get_report(db, report_id)
    if not report:
        raise ReportNotFoundError(f"Report {report_id} not found")
    if not actor or report.created_by != actor:
        raise ReportPermissionError("Only the creator of the report may modify it")
    return report


def update_report(db: Session, report_id: int, actor: str | None, data: ReportUpdate) -> Report:
    """Apply a partial update. Creator only; the title can never become blank."""
    actor = _clean_actor(actor)
    report = _require_creator(db, report_id, actor)

    if data.title is not None and _blank(data.title):
        raise ReportValidationError("title", "Le titre du rapport est obligatoire")

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if field == "status":
            value = data.status.value
        elif field == "title":
            value = value.strip()
        setattr(report, field, value)
    db.commit()
    db.refresh(report)

    _audit(db, AuditEventType.REPORT_UPDATED, actor, f"Rapport modifié: \"{report.title}\"", report.id)
    return report


def delete_report(db: Session, report_id: int, actor: str | None) -> None:
    """
    Delete a report and its files. Creator only.

    Files go first; a file cleanup failure is logged and deletion continues.
    """
    actor = _clean_actor(actor)
    report = _require_creator(db, report_id, actor)
    title = report.title
    log_context = build_log_context(actor=actor, report_id=report_id)

    deleted_files, error = report_file_service.delete_report_files(db, report_id)
    if error:
        logger.warning("Report file cleanup failed: %s", error, extra=log_context)
    elif deleted_files:
        logger.info("Removed %s report files", deleted_files, extra=log_context)

    db.delete(report)
    db.commit()
    logger.info("Report deleted", extra=log_context)

    _audit(db, AuditEventType.REPORT_DELETED, actor, f"Rapport supprimé: \"{title}\"", report_id)
