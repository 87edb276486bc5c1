"""Pydantic schemas for reports and report files."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from assurance.db.enums import ReportStatus


class ReportCreate(BaseModel):
    """
    Request schema for creating a report.

    Required fields are checked by report_service.validate_required_fields so
    that the missing field is named in the error; the schema only bounds sizes.
    """

    title: str | None = Field(None, max_length=255)
    beneficiary: str | None = Field(None, max_length=255)
    beneficiaries: str | None = None  # JSON array or plain string
    insured: str | None = Field(None, max_length=255)
    insureds: str | None = None  # JSON array or plain string
    initiator: str | None = Field(None, max_length=255)
    subscriber: str | None = Field(None, max_length=255)
    case_id: str | None = Field(None, max_length=64)
    status: ReportStatus | None = None
    created_by: str | None = Field(None, max_length=150)


class ReportUpdate(BaseModel):
    """Partial update. The title may be changed but never blanked."""

    title: str | None = Field(None, max_length=255)
    beneficiary: str | None = Field(None, max_length=255)
    beneficiaries: str | None = None
    insured: str | None = Field(None, max_length=255)
    insureds: str | None = None
    initiator: str | None = Field(None, max_length=255)
    subscriber: str | None = Field(None, max_length=255)
    status: ReportStatus | None = None


class ReportRead(BaseModel):
    """Response schema for a report."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    beneficiary: str | None
    beneficiaries: str
    insured: str | None
    insureds: str
    initiator: str
    subscriber: str
    case_id: str
    status: ReportStatus
    created_by: str | None
    created_at: datetime


class ReportPermissions(BaseModel):
    can_edit: bool
    can_delete: bool


class ReportFileRead(BaseModel):
    """File metadata (content is served by the download endpoint)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    report_id: int
    file_name: str
    content_type: str
    file_size: int
    created_at: datetime


class CreatorCount(BaseModel):
    created_by: str | None
    count: int


class DashboardRead(BaseModel):
    """Back-office dashboard totals."""

    total_cases: int
    total_reports: int
    total_users: int
    unread_notifications: int
    reports_by_creator: list[CreatorCount]
    recent_reports: list[ReportRead]
