"""Pydantic schemas for notifications and audit events."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NotificationRead(BaseModel):
    """Notification response. `metadata` is decoded from the stored JSON column."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str | None
    message: str | None
    type: str
    action: str | None
    url: str | None
    metadata: dict[str, Any] = Field(default_factory=dict)
    state: str
    read: bool
    read_at: datetime | None
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def decode_metadata(cls, data: Any) -> Any:
        if not hasattr(data, "metadata_json"):
            return data
        decoded: Any = {}
        if data.metadata_json:
            try:
                decoded = json.loads(data.metadata_json)
            except ValueError:
                decoded = {}
        return {
            "id": data.id,
            "user_id": data.user_id,
            "title": data.title,
            "message": data.message,
            "type": data.type,
            "action": data.action,
            "url": data.url,
            "metadata": decoded if isinstance(decoded, dict) else {},
            "state": data.state,
            "read": data.read,
            "read_at": data.read_at,
            "created_at": data.created_at,
        }


class UnreadCountResponse(BaseModel):
    """Unread count only (for polling)."""
    count: int


class MutationResult(BaseModel):
    """Outcome of a notification state change."""
    success: bool
    count: int | None = None


class AuditEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    actor: str | None
    message: str | None
    created_at: datetime
