from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from docshare.schemas.collaboration import CommentNodeRead, RatingSummary
from docshare.services.access import normalize_review_status


class SubjectBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    file_name: str
    mime_type: str | None = None
    file_size: int
    owner_id: UUID | None = None
    subject_id: UUID | None = None
    subject: SubjectBrief | None = None
    pending_subject: bool = False
    review_status: str | None = None
    review_reason: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    download_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("review_status", mode="before")
    @classmethod
    def effective_status(cls, value: str | None) -> str:
        return normalize_review_status(value)


class DocumentDetailRead(BaseModel):
    document: DocumentRead
    rating: RatingSummary
    comments: list[CommentNodeRead]
    viewer_is_uploader: bool
    viewer_is_privileged: bool
    report_count: int
    reported_by_viewer: bool


class SubjectAssignRequest(BaseModel):
    subject_id: UUID
