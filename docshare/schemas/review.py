from __future__ import annotations

from pydantic import BaseModel

from docshare.schemas.documents import DocumentRead


class ReviewQueueItem(BaseModel):
    document: DocumentRead
    report_count: int = 0


class ReviewDecisionRequest(BaseModel):
    action: str | None = None
    reason: str | None = None


class ReviewDecisionResponse(BaseModel):
    action: str
    deleted: bool
    document: DocumentRead | None = None


class ModerationReasonRequest(BaseModel):
    reason: str | None = None
