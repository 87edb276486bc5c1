"""FastAPI dependencies: database session and CSRF guard."""

from typing import Generator

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from assurance.db.session import SessionLocal

CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_csrf_header(request: Request) -> None:
    """Reject case, report and notification mutations sent without the CSRF header (403)."""
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
