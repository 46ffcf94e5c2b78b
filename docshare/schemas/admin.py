from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docshare.schemas.documents import DocumentRead


class AdminOverview(BaseModel):
    total_users: int
    active_users: int
    total_documents: int
    total_downloads: int
    documents_today: int
    total_comments: int


class AdminDocumentItem(BaseModel):
    document: DocumentRead
    report_count: int = 0


class PersonRoleUpdate(BaseModel):
    role_id: UUID | None = None
    role_name: str | None = Field(default=None, max_length=80)


class PersonAdminRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role_id: UUID | None = None
    role_name: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
