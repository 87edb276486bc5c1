"""Case API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from assurance.core.deps import get_db, require_csrf_header
from assurance.schemas.case import (
    CaseCreate,
    CasePermissions,
    CaseRead,
    CaseUpdate,
    CleanupResult,
)
from assurance.services import case_service
from assurance.services.case_service import (
    CaseNotFoundError,
    CasePermissionError,
    DuplicateReferenceError,
    InvalidActorError,
    ReferenceGenerationError,
)

router = APIRouter()


@router.get("", response_model=list[CaseRead])
def list_cases(
    creator: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """List cases, optionally filtered by creator."""
    if creator and creator.strip():
        return case_service.list_by_creator(db, creator.strip())
    return case_service.list_cases(db)


@router.get("/my-cases", response_model=list[CaseRead])
def my_cases(actor: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return case_service.list_by_creator(db, actor)


@router.get("/reference/{reference}", response_model=CaseRead)
def get_case_by_reference(reference: str, db: Session = Depends(get_db)):
    case = case_service.get_case_by_reference(db, reference)
    if not case:
        raise HTTPException(status_code=404, detail=f"No case with reference {reference.strip()}")
    return case


@router.get("/{case_id}/permissions", response_model=CasePermissions)
def get_permissions(case_id: int, actor: str = Query(...), db: Session = Depends(get_db)):
    return case_service.get_permissions(db, case_id, actor)


@router.post(
    "",
    response_model=CaseRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_case(
    data: CaseCreate,
    actor: str = Query(...),
    db: Session = Depends(get_db),
):
    """Create a case; the reference is generated when omitted."""
    try:
        return case_service.create_case(db, actor, data)
    except InvalidActorError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateReferenceError as e:
        raise HTTPException(status_code=409, detail=f"Reference already in use: {e}")
    except ReferenceGenerationError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.put(
    "/{case_id}",
    response_model=CaseRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_case(
    case_id: int,
    data: CaseUpdate,
    actor: str = Query(...),
    db: Session = Depends(get_db),
):
    """Update status and/or payload. Creator only."""
    try:
        return case_service.update_case(db, case_id, actor, data)
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    except CasePermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.delete("/{case_id}", dependencies=[Depends(require_csrf_header)])
def delete_case(case_id: int, actor: str = Query(...), db: Session = Depends(get_db)):
    try:
        case_service.delete_case(db, case_id, actor)
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    except CasePermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"success": True}


@router.post(
    "/cleanup-duplicates",
    response_model=CleanupResult,
    dependencies=[Depends(require_csrf_header)],
)
def cleanup_duplicates(db: Session = Depends(get_db)):
    deleted = case_service.cleanup_duplicate_cases(db)
    return CleanupResult(
        deleted_count=deleted,
        message=f"Nettoyage terminé. {deleted} dossiers dupliqués supprimés.",
    )
