"""Pydantic schemas for cases."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assurance.db.enums import DEFAULT_CASE_STATUS, CaseStatus, CaseType


class CaseCreate(BaseModel):
    """Request schema for creating a case. A blank reference is generated server-side."""

    reference: str | None = Field(None, max_length=64)
    type: CaseType = CaseType.ENQUETE
    status: CaseStatus | None = DEFAULT_CASE_STATUS
    data_json: str | None = None

    @field_validator("reference")
    @classmethod
    def blank_reference_is_absent(cls, v: str | None) -> str | None:
        if v is None or v.strip() == "":
            return None
        return v.strip()


class CaseUpdate(BaseModel):
    """Only status and payload are mutable after creation."""

    status: CaseStatus | None = None
    data_json: str | None = None


class CaseRead(BaseModel):
    """Response schema for a case."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    type: CaseType
    status: CaseStatus | None
    data_json: str | None
    created_by: str
    created_at: datetime


class CasePermissions(BaseModel):
    can_edit: bool
    can_delete: bool


class CleanupResult(BaseModel):
    deleted_count: int
    message: str
