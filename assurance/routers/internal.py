"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from an external cron (systemd timer, CI schedule, ...).
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from assurance.core.config import settings
from assurance.core.deps import get_db
from assurance.services import case_service, notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


class SweepResponse(BaseModel):
    deleted: int


@router.post(
    "/notification-retention",
    response_model=SweepResponse,
    dependencies=[Depends(verify_internal_secret)],
)
def notification_retention(db: Session = Depends(get_db)):
    """Daily sweep: hard-delete notifications past NOTIFICATION_RETENTION_DAYS."""
    deleted = notification_service.purge_old_notifications(db)
    return SweepResponse(deleted=deleted)


@router.post(
    "/duplicate-cases",
    response_model=SweepResponse,
    dependencies=[Depends(verify_internal_secret)],
)
def duplicate_cases(db: Session = Depends(get_db)):
    """Remove cases whose payload duplicates a more recent case."""
    deleted = case_service.cleanup_duplicate_cases(db)
    if deleted:
        logger.info("Scheduled duplicate cleanup removed %s cases", deleted)
    return SweepResponse(deleted=deleted)
