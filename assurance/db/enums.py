"""Enum definitions for application constants."""

from enum import Enum


class UserRole(str, Enum):
    """Back-office roles."""
    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    """
    Account lifecycle.

    PENDING → REGISTERED → DELETED
    """
    PENDING = "PENDING"
    REGISTERED = "REGISTERED"
    DELETED = "DELETED"


class CaseType(str, Enum):
    """Kinds of investigation case."""
    ENQUETE = "ENQUETE"
    CONTRE_ENQUETE = "CONTRE_ENQUETE"


class CaseStatus(str, Enum):
    """
    Case status.

    SOUS_ENQUETE (under investigation) → EN_ATTENTE (on hold) → CLOS (closed)
    """
    SOUS_ENQUETE = "SOUS_ENQUETE"
    EN_ATTENTE = "EN_ATTENTE"
    CLOS = "CLOS"


class ReportStatus(str, Enum):
    """Report availability."""
    DISPONIBLE = "DISPONIBLE"  # available
    ARCHIVE = "ARCHIVE"


class NotificationType(str, Enum):
    """Types of in-app notifications."""
    CASE_CREATED = "CASE_CREATED"
    CASE_STATUS_CHANGED = "CASE_STATUS_CHANGED"
    REPORT_CREATED = "REPORT_CREATED"
    SYSTEM = "SYSTEM"


class NotificationState(str, Enum):
    """
    Notification lifecycle.

    unread → read → trashed → (purged)
    trashed → unread | read (restore keeps read-ness)
    """
    UNREAD = "unread"
    READ = "read"
    TRASHED = "trashed"


class AuditEventType(str, Enum):
    """Domain audit events."""
    CASE_CREATED = "CASE_CREATED"
    REPORT_CREATED = "REPORT_CREATED"
    # Only emitted when AUDIT_DISTINCT_REPORT_EVENTS is enabled
    REPORT_UPDATED = "REPORT_UPDATED"
    REPORT_DELETED = "REPORT_DELETED"


class JobType(str, Enum):
    """Types of background jobs."""
    NOTIFICATION_FANOUT = "notification_fanout"


class JobStatus(str, Enum):
    """Status of background jobs."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


DEFAULT_CASE_TYPE = CaseType.ENQUETE
DEFAULT_CASE_STATUS = CaseStatus.SOUS_ENQUETE
DEFAULT_REPORT_STATUS = ReportStatus.DISPONIBLE
DEFAULT_JOB_STATUS = JobStatus.PENDING
