from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from docshare.services.notification import extract_reason


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    person_id: UUID
    notification_type: str
    message: str
    document_id: UUID | None = None
    document_title: str | None = None
    subject_name: str | None = None
    reason: str | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @model_validator(mode="after")
    def _fill_reason(self):
        self.reason = extract_reason(self)
        return self


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    marked: int
