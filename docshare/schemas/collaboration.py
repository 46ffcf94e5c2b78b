from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class CommentCreate(BaseModel):
    content: str
    parent_id: UUID | None = None


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    parent_id: UUID | None = None
    author_id: UUID | None = None
    content: str
    created_at: datetime | None = None


class CommentNodeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID | int
    content: str | None = None
    created_at: datetime | None = None
    author_id: UUID | None = None
    author_name: str | None = None
    author_email: str | None = None
    author_role: str | None = None
    author_avatar_url: str | None = None
    rating_score: int | None = None
    rating_only: bool = False
    author_is_uploader: bool = False
    parent_id: UUID | None = None
    report_count: int = 0
    reported_by_viewer: bool = False
    replies: list[CommentNodeRead] = Field(default_factory=list)


class AdminCommentRead(BaseModel):
    id: UUID
    document_id: UUID
    document_title: str | None = None
    parent_id: UUID | None = None
    author_id: UUID | None = None
    author_name: str | None = None
    content: str
    created_at: datetime | None = None
    report_count: int = 0


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------


class RatingRequest(BaseModel):
    score: int


class RatingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    person_id: UUID
    score: int
    rated_at: datetime | None = None


class RatingSummary(BaseModel):
    average: float
    total: int
    user_score: int | None = None


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportRequest(BaseModel):
    reason: str | None = None


class ReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reporter_id: UUID
    reason: str | None = None
    created_at: datetime


class ReportClearResponse(BaseModel):
    cleared: int
