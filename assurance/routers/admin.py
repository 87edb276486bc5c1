"""Back-office dashboard and audit trail endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from assurance.core.deps import get_db
from assurance.db.enums import AuditEventType
from assurance.schemas.notification import AuditEventRead
from assurance.schemas.report import CreatorCount, DashboardRead, ReportRead
from assurance.services import (
    audit_service,
    case_service,
    notification_service,
    report_service,
    user_service,
)

router = APIRouter()


@router.get("/admin/dashboard", response_model=DashboardRead)
def get_dashboard(db: Session = Depends(get_db)):
    """Totals, report counts per creator and the ten most recent reports."""
    return DashboardRead(
        total_cases=case_service.count_cases(db),
        total_reports=report_service.count_reports(db),
        total_users=user_service.count_users(db),
        unread_notifications=notification_service.count_all_unread(db),
        reports_by_creator=[
            CreatorCount(created_by=created_by, count=count)
            for created_by, count in report_service.count_by_creator(db)
        ],
        recent_reports=[
            ReportRead.model_validate(report)
            for report in report_service.recent_reports(db, limit=10)
        ],
    )


@router.get("/audit", response_model=list[AuditEventRead])
def list_audit_events(
    type: AuditEventType | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Audit events, most recent first."""
    return audit_service.list_events(db, event_type=type, limit=limit, offset=offset)
