"""Pydantic schemas for API request/response models."""

from assurance.schemas.case import (
    CaseCreate,
    CasePermissions,
    CaseRead,
    CaseUpdate,
    CleanupResult,
)
from assurance.schemas.notification import (
    AuditEventRead,
    MutationResult,
    NotificationRead,
    UnreadCountResponse,
)
from assurance.schemas.report import (
    CreatorCount,
    DashboardRead,
    ReportCreate,
    ReportFileRead,
    ReportPermissions,
    ReportRead,
    ReportUpdate,
)

__all__ = [
    # Cases
    "CaseCreate",
    "CaseUpdate",
    "CaseRead",
    "CasePermissions",
    "CleanupResult",
    # Reports
    "ReportCreate",
    "ReportUpdate",
    "ReportRead",
    "ReportPermissions",
    "ReportFileRead",
    "CreatorCount",
    "DashboardRead",
    # Notifications & audit
    "NotificationRead",
    "UnreadCountResponse",
    "MutationResult",
    "AuditEventRead",
]
