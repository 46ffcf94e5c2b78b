from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SubjectWrite(BaseModel):
    name: str


class SubjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_at: datetime | None = None


class SubjectWithCount(BaseModel):
    id: UUID
    name: str
    document_count: int


class SubjectDeleteResponse(BaseModel):
    reassigned_documents: int
