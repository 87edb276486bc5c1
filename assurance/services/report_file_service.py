"""Report file service - report attachments on local disk or S3."""

import logging
import os
import uuid
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assurance.core.config import settings
from assurance.core.structured_logging import build_log_context
from assurance.db.models import ReportFile

logger = logging.getLogger(__name__)


class ReportFileError(Exception):
    """Uploaded file rejected."""

    pass


# =============================================================================
# Storage Backend
# =============================================================================

def _get_s3_client():
    """Get boto3 S3 client."""
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION,
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
    )


def _get_storage_backend() -> str:
    return settings.STORAGE_BACKEND


def _get_local_storage_path() -> str:
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _local_path(storage_key: str) -> str:
    return os.path.join(_get_local_storage_path(), storage_key)


def store_file(storage_key: str, file: BinaryIO) -> None:
    """Store file to configured backend."""
    if _get_storage_backend() == "s3":
        file.seek(0)
        _get_s3_client().upload_fileobj(file, settings.S3_BUCKET, storage_key)
        return

    path = _local_path(storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        file.seek(0)
        f.write(file.read())


def read_file(storage_key: str) -> bytes:
    """Read stored content. Raises FileNotFoundError when missing locally."""
    if _get_storage_backend() == "s3":
        response = _get_s3_client().get_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        return response["Body"].read()

    with open(_local_path(storage_key), "rb") as f:
        return f.read()


def delete_file(storage_key: str) -> None:
    if _get_storage_backend() == "s3":
        _get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        return

    path = _local_path(storage_key)
    if os.path.exists(path):
        os.remove(path)


# =============================================================================
# Service Functions
# =============================================================================

def validate_file(filename: str | None, file_size: int) -> tuple[bool, str | None]:
    """
    Validate an upload against the size limit.

    Returns (is_valid, error_message)
    """
    if not filename or not filename.strip():
        return False, "File name is required"
    if file_size <= 0:
        return False, "File is empty"
    if file_size > settings.MAX_REPORT_FILE_BYTES:
        max_mb = settings.MAX_REPORT_FILE_BYTES / (1024 * 1024)
        return False, f"File size exceeds {max_mb:.0f} MB limit"
    return True, None


def upload_report_file(
    db: Session,
    report_id: int,
    filename: str,
    content_type: str | None,
    file: BinaryIO,
    file_size: int,
) -> ReportFile:
    """Store the content, then record it against the report."""
    is_valid, error = validate_file(filename, file_size)
    if not is_valid:
        raise ReportFileError(error)

    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    storage_key = f"reports/{report_id}/{uuid.uuid4().hex}.{ext}"
    store_file(storage_key, file)

    report_file = ReportFile(
        report_id=report_id,
        file_name=filename,
        content_type=content_type or "application/octet-stream",
        file_size=file_size,
        storage_key=storage_key,
    )
    db.add(report_file)
    db.commit()
    db.refresh(report_file)
    logger.info("Stored report file %s", report_file.id, extra=build_log_context(report_id=report_id))
    return report_file


def attach_report_file(
    db: Session,
    report_id: int,
    filename: str,
    content_type: str | None,
    file: BinaryIO,
    file_size: int,
) -> tuple[ReportFile | None, str | None]:
    """
    Upload a file for a report that already exists.

    Returns (report_file, None), or (None, error) when storage or the insert
    fails; the report itself is left as is.
    """
    try:
        return upload_report_file(db, report_id, filename, content_type, file, file_size), None
    except (OSError, BotoCoreError, ClientError, SQLAlchemyError) as exc:
        db.rollback()
        logger.warning(
            "Report file not stored: %s",
            type(exc).__name__,
            extra=build_log_context(report_id=report_id),
        )
        return None, f"{type(exc).__name__}: {exc}"


def list_report_files(db: Session, report_id: int) -> list[ReportFile]:
    return (
        db.query(ReportFile)
        .filter(ReportFile.report_id == report_id)
        .order_by(ReportFile.created_at.desc(), ReportFile.id.desc())
        .all()
    )


def get_report_file(db: Session, report_id: int, file_id: int) -> ReportFile | None:
    return db.query(ReportFile).filter(
        ReportFile.id == file_id,
        ReportFile.report_id == report_id,
    ).first()


def delete_report_files(db: Session, report_id: int) -> tuple[int, str | None]:
    """
    Remove every file of a report (content, then row).

    Best-effort: returns (deleted_count, error). Rows whose content could not
    be removed from storage are still deleted; a database failure stops the
    sweep and is returned as the error.
    """
    deleted = 0
    try:
        for report_file in list_report_files(db, report_id):
            try:
                delete_file(report_file.storage_key)
            except (OSError, BotoCoreError, ClientError) as exc:
                logger.warning(
                    "Could not remove stored content %s: %s",
                    report_file.storage_key,
                    type(exc).__name__,
                    extra=build_log_context(report_id=report_id),
                )
            db.delete(report_file)
            deleted += 1
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        return 0, f"{type(exc).__name__}: {exc}"
    return deleted, None
