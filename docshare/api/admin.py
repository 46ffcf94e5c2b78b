from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from docshare.api.deps import Viewer, require_admin
from docshare.db import get_db
from docshare.schemas.admin import (
    AdminDocumentItem,
    AdminOverview,
    PersonAdminRead,
    PersonRoleUpdate,
)
from docshare.schemas.collaboration import AdminCommentRead
from docshare.schemas.common import ListResponse
from docshare.schemas.documents import DocumentRead, SubjectAssignRequest
from docshare.schemas.review import (
    ModerationReasonRequest,
    ReviewDecisionRequest,
    ReviewDecisionResponse,
    ReviewQueueItem,
)
from docshare.services.admin import admin_console
from docshare.services.interactions import comments
from docshare.services.review import parse_action, review_workflow
from docshare.services.subjects import change_subject

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)


# ------------------------------------------------------------------
# Overview
# ------------------------------------------------------------------


@router.get("/overview", response_model=AdminOverview)
def get_overview(db: Session = Depends(get_db)):
    return admin_console.overview(db)


@router.get("/documents", response_model=list[AdminDocumentItem])
def list_recent_documents(db: Session = Depends(get_db)):
    return admin_console.recent_documents(db)


# ------------------------------------------------------------------
# Review queue
# ------------------------------------------------------------------


@router.get("/review/documents", response_model=list[ReviewQueueItem])
def list_pending_documents(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return review_workflow.list_pending(db, limit, offset)


@router.patch("/review/documents/{document_id}", response_model=ReviewDecisionResponse)
def review_document(
    document_id: str,
    payload: ReviewDecisionRequest,
    viewer: Viewer = Depends(require_admin),
    db: Session = Depends(get_db),
):
    document = review_workflow.decide(
        db, document_id, payload.action, payload.reason, viewer.person
    )
    return {
        "action": parse_action(payload.action).value,
        "deleted": document is None,
        "document": document,
    }


# ------------------------------------------------------------------
# Moderation
# ------------------------------------------------------------------


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    payload: ModerationReasonRequest | None = Body(default=None),
    db: Session = Depends(get_db),
):
    review_workflow.admin_delete(db, document_id, payload.reason if payload else None)


@router.patch("/documents/{document_id}/subject", response_model=DocumentRead)
def reassign_subject(
    document_id: str,
    payload: SubjectAssignRequest,
    db: Session = Depends(get_db),
):
    return change_subject(db, document_id, payload.subject_id)


@router.get("/comments", response_model=ListResponse[AdminCommentRead])
def list_comments(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return comments.list_response(db, limit, offset)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: str,
    payload: ModerationReasonRequest | None = Body(default=None),
    db: Session = Depends(get_db),
):
    comments.admin_delete(db, comment_id, payload.reason if payload else None)


# ------------------------------------------------------------------
# People
# ------------------------------------------------------------------


@router.patch("/people/{person_id}/role", response_model=PersonAdminRead)
def update_person_role(
    person_id: str,
    payload: PersonRoleUpdate,
    db: Session = Depends(get_db),
):
    return admin_console.update_role(
        db, person_id, role_id=payload.role_id, role_name=payload.role_name
    )
