"""Report API endpoints (reports and their files)."""

from io import BytesIO
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from assurance.core.deps import get_db, require_csrf_header
from assurance.db.enums import ReportStatus
from assurance.schemas.report import (
    ReportCreate,
    ReportFileRead,
    ReportPermissions,
    ReportRead,
    ReportUpdate,
)
from assurance.services import report_file_service, report_service
from assurance.services.case_service import CaseServiceError, DuplicateReferenceError
from assurance.services.report_file_service import ReportFileError
from assurance.services.report_service import (
    ReportNotFoundError,
    ReportPermissionError,
    ReportValidationError,
)

router = APIRouter()


def _validation_error(e: ReportValidationError) -> HTTPException:
    return HTTPException(status_code=400, detail={"field": e.field, "message": str(e)})


def _case_error(e: CaseServiceError) -> HTTPException:
    if isinstance(e, DuplicateReferenceError):
        return HTTPException(status_code=409, detail=f"Reference already in use: {e}")
    return HTTPException(status_code=503, detail=str(e))


def _get_report_or_404(db: Session, report_id: int):
    report = report_service.get_report(db, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


# =============================================================================
# Reports
# =============================================================================

@router.get("", response_model=list[ReportRead])
def list_reports(db: Session = Depends(get_db)):
    return report_service.list_reports(db)


@router.get("/owner/{owner}/ids", response_model=list[int])
def list_report_ids_by_owner(owner: str, db: Session = Depends(get_db)):
    return report_service.list_report_ids_by_owner(db, owner)


@router.get("/{report_id}", response_model=ReportRead)
def get_report(report_id: int, db: Session = Depends(get_db)):
    return _get_report_or_404(db, report_id)


@router.get("/{report_id}/permissions", response_model=ReportPermissions)
def get_permissions(report_id: int, actor: str = Query(...), db: Session = Depends(get_db)):
    return report_service.get_permissions(db, report_id, actor)


@router.post(
    "",
    response_model=ReportRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_report(
    data: ReportCreate,
    actor: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """
    Create a report.

    An unknown case reference in `case_id` auto-creates the case.
    """
    try:
        return report_service.create_report(db, data, actor or data.created_by)
    except ReportValidationError as e:
        raise _validation_error(e)
    except CaseServiceError as e:
        raise _case_error(e)


@router.post(
    "/with-file",
    response_model=ReportRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def create_report_with_file(
    title: Annotated[str | None, Form()] = None,
    beneficiary: Annotated[str | None, Form()] = None,
    beneficiaries: Annotated[str | None, Form()] = None,
    insured: Annotated[str | None, Form()] = None,
    insureds: Annotated[str | None, Form()] = None,
    initiator: Annotated[str | None, Form()] = None,
    subscriber: Annotated[str | None, Form()] = None,
    case_id: Annotated[str | None, Form()] = None,
    status: Annotated[ReportStatus | None, Form()] = None,
    created_by: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File()] = None,
    db: Session = Depends(get_db),
):
    """Create a report from a multipart form; the file part is optional."""
    data = ReportCreate(
        title=title,
        beneficiary=beneficiary,
        beneficiaries=beneficiaries,
        insured=insured,
        insureds=insureds,
        initiator=initiator,
        subscriber=subscriber,
        case_id=case_id,
        status=status,
        created_by=created_by,
    )
    content = await file.read() if file is not None else b""
    has_file = bool(content)
    if has_file:
        is_valid, error = report_file_service.validate_file(file.filename, len(content))
        if not is_valid:
            raise HTTPException(status_code=400, detail=error)

    try:
        report = report_service.create_report_with_file(db, data, has_file=has_file)
    except ReportValidationError as e:
        raise _validation_error(e)
    except CaseServiceError as e:
        raise _case_error(e)

    if has_file:
        # store failures are logged; the report stands
        report_file_service.attach_report_file(
            db,
            report_id=report.id,
            filename=file.filename,
            content_type=file.content_type,
            file=BytesIO(content),
            file_size=len(content),
        )
    return report


@router.put(
    "/{report_id}",
    response_model=ReportRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_report(
    report_id: int,
    data: ReportUpdate,
    actor: str = Query(...),
    db: Session = Depends(get_db),
):
    try:
        return report_service.update_report(db, report_id, actor, data)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    except ReportPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ReportValidationError as e:
        raise _validation_error(e)


@router.delete("/{report_id}", dependencies=[Depends(require_csrf_header)])
def delete_report(report_id: int, actor: str = Query(...), db: Session = Depends(get_db)):
    try:
        report_service.delete_report(db, report_id, actor)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    except ReportPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"success": True}


# =============================================================================
# Report files
# =============================================================================

@router.get("/{report_id}/files", response_model=list[ReportFileRead])
def list_report_files(report_id: int, db: Session = Depends(get_db)):
    _get_report_or_404(db, report_id)
    return report_file_service.list_report_files(db, report_id)


@router.post(
    "/{report_id}/files",
    response_model=ReportFileRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_report_file(
    report_id: int,
    file: Annotated[UploadFile, File()],
    db: Session = Depends(get_db),
):
    _get_report_or_404(db, report_id)
    content = await file.read()
    try:
        return report_file_service.upload_report_file(
            db,
            report_id=report_id,
            filename=file.filename or "untitled",
            content_type=file.content_type,
            file=BytesIO(content),
            file_size=len(content),
        )
    except ReportFileError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{report_id}/files/{file_id}")
def download_report_file(report_id: int, file_id: int, db: Session = Depends(get_db)):
    report_file = report_file_service.get_report_file(db, report_id, file_id)
    if not report_file:
        raise HTTPException(status_code=404, detail="File not found")
    try:
        content = report_file_service.read_file(report_file.storage_key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="File content missing")
    return Response(
        content=content,
        media_type=report_file.content_type,
        headers={"Content-Disposition": f'attachment; filename="{report_file.file_name}"'},
    )
