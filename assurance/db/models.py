"""SQLAlchemy ORM models for cases, reports, notifications and the audit trail."""

from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, true
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assurance.db.base import Base, utcnow
from assurance.db.enums import (
    DEFAULT_CASE_TYPE, DEFAULT_JOB_STATUS, DEFAULT_REPORT_STATUS,
    NotificationState, UserRole, UserStatus,
)


# =============================================================================
# User Directory
# =============================================================================

class User(Base):
    """
    Back-office user.

    Read by the notification fan-out to compute recipient sets;
    `username` is the identity stored as actor / recipient everywhere else.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default=true(),
        nullable=False
    )
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=UserStatus.PENDING.value,
        nullable=False
    )
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.USER.value,
        nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


# =============================================================================
# Cases & Reports
# =============================================================================

class Case(Base):
    """
    Investigation case identified by a short reference code.

    Only `created_by` may change status / payload or delete the case.
    """
    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint("reference", name="uq_cases_reference"),
        Index("idx_cases_created_by", "created_by"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reference: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(
        String(30),
        default=DEFAULT_CASE_TYPE.value,
        nullable=False
    )
    # Left NULL when created without one; CaseCreate defaults to SOUS_ENQUETE
    status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    # Serialized case document (opaque to the service layer)
    data_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(150), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class Report(Base):
    """
    Report attached to a case.

    `case_id` is loosely typed: a numeric case id or a case reference.
    """
    __tablename__ = "reports"
    __table_args__ = (
        Index("idx_reports_created_by", "created_by"),
        Index("idx_reports_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Identities: single primary name + serialized list (JSON array or plain string)
    beneficiary: Mapped[str | None] = mapped_column(String(255), nullable=True)
    beneficiaries: Mapped[str] = mapped_column(Text, nullable=False)
    insured: Mapped[str | None] = mapped_column(String(255), nullable=True)
    insureds: Mapped[str] = mapped_column(Text, nullable=False)
    initiator: Mapped[str] = mapped_column(String(255), nullable=False)
    subscriber: Mapped[str] = mapped_column(String(255), nullable=False)

    case_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30),
        default=DEFAULT_REPORT_STATUS.value,
        nullable=False
    )
    created_by: Mapped[str | None] = mapped_column(String(150), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    files: Mapped[list["ReportFile"]] = relationship(
        back_populates="report",
        cascade="all, delete-orphan"
    )


class ReportFile(Base):
    """File attached to a report. Content lives in the file store under `storage_key`."""
    __tablename__ = "report_files"
    __table_args__ = (
        Index("idx_report_files_report", "report_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("reports.id"),
        nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    report: Mapped["Report"] = relationship(back_populates="files")


# =============================================================================
# Notifications & Audit
# =============================================================================

class Notification(Base):
    """
    In-app notification owned by a single recipient.

    Fan-out writes one row per recipient per event.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notif_user_state", "user_id", "state", "created_at"),
        Index("idx_notif_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(150), nullable=False)  # recipient username

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str | None] = mapped_column(String(100), nullable=True)
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Extension fields beyond title/message/type/action/url, JSON-serialized
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)

    state: Mapped[str] = mapped_column(
        String(20),
        default=NotificationState.UNREAD.value,
        nullable=False
    )
    read_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @property
    def read(self) -> bool:
        return self.read_at is not None

    @property
    def trashed(self) -> bool:
        return self.state == NotificationState.TRASHED.value


class AuditEvent(Base):
    """Append-only record of a domain action. Never updated by the lifecycle services."""
    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_type_created", "type", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    actor: Mapped[str | None] = mapped_column(String(150), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


# =============================================================================
# Background Jobs
# =============================================================================

class Job(Base):
    """
    Background job for async processing.

    Used for: queued notification fan-out (one job per recipient).
    Worker polls for pending jobs and processes them.
    """
    __tablename__ = "jobs"
    __table_args__ = (
        Index("idx_jobs_pending", "status", "run_at"),
        UniqueConstraint("idempotency_key", name="uq_job_idempotency"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    job_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    run_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_JOB_STATUS.value,
        nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Idempotency key for deduplication (NULLs never collide)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
