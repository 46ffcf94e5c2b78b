from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from docshare.api.deps import Viewer, get_viewer, require_admin, require_viewer
from docshare.db import get_db
from docshare.models.documents import ReportTarget
from docshare.schemas.collaboration import (
    CommentCreate,
    CommentNodeRead,
    CommentRead,
    RatingRead,
    RatingRequest,
    RatingSummary,
    ReportClearResponse,
    ReportRead,
    ReportRequest,
)
from docshare.schemas.common import ListResponse
from docshare.schemas.documents import (
    DocumentDetailRead,
    DocumentRead,
    SubjectAssignRequest,
)
from docshare.services.access import require_visible
from docshare.services.documents import documents
from docshare.services.interactions import comments, interaction_aggregator, ratings
from docshare.services.reports import report_ledger
from docshare.services.response import list_response
from docshare.services.subjects import assign_subject

router = APIRouter(prefix="/documents", tags=["documents"])


def _attachment_header(file_name: str) -> str:
    return f"attachment; filename*=UTF-8''{quote(file_name)}"


# ------------------------------------------------------------------
# Documents
# ------------------------------------------------------------------


@router.post("/upload", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    subject_id: str | None = Form(default=None),
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    content = await file.read()
    return documents.store(
        db,
        file.filename,
        content,
        viewer.person,
        subject_id=subject_id,
        title=title,
        description=description,
        mime_type=file.content_type,
    )


@router.get("", response_model=ListResponse[DocumentRead])
def list_documents(
    subject_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    items = documents.list_visible(
        db,
        viewer.person,
        viewer.privileged,
        subject_id=subject_id,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )
    return list_response(items, limit, offset)


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: str,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    return documents.get_visible(db, document_id, viewer.person, viewer.privileged)


@router.get("/{document_id}/detail", response_model=DocumentDetailRead)
def get_document_detail(
    document_id: str,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    return documents.detail(db, document_id, viewer.person, viewer.privileged)


@router.get("/{document_id}/download")
def download_document(
    document_id: str,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    document, data = documents.download(
        db, document_id, viewer.person, viewer.privileged
    )
    return Response(
        content=data,
        media_type=document.mime_type or "application/octet-stream",
        headers={"Content-Disposition": _attachment_header(document.file_name)},
    )


@router.get("/{document_id}/preview")
def preview_document(
    document_id: str,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    data = documents.preview(db, document_id, viewer.person, viewer.privileged)
    return Response(content=data, media_type="image/png")


@router.patch("/{document_id}/subject", response_model=DocumentRead)
def classify_document(
    document_id: str,
    payload: SubjectAssignRequest,
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    return assign_subject(
        db, document_id, payload.subject_id, viewer.person, viewer.privileged
    )


# ------------------------------------------------------------------
# Comments
# ------------------------------------------------------------------


@router.get("/{document_id}/comments", response_model=list[CommentNodeRead])
def list_comments(
    document_id: str,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    document = require_visible(db, document_id, viewer.person, viewer.privileged)
    return interaction_aggregator.build_thread(db, document, viewer.person)


@router.post(
    "/{document_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    document_id: str,
    payload: CommentCreate,
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    document = require_visible(db, document_id, viewer.person, viewer.privileged)
    return comments.add(db, document, payload.content, payload.parent_id, viewer.person)


@router.post(
    "/{document_id}/comments/{comment_id}/report",
    response_model=ReportRead,
    status_code=status.HTTP_201_CREATED,
)
def report_comment(
    document_id: str,
    comment_id: str,
    payload: ReportRequest,
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    return report_ledger.file_report(
        db,
        ReportTarget.comment,
        comment_id,
        viewer.person,
        payload.reason,
        document_id=document_id,
        privileged=viewer.privileged,
    )


# ------------------------------------------------------------------
# Ratings
# ------------------------------------------------------------------


@router.get("/{document_id}/rating", response_model=RatingSummary)
def get_rating(
    document_id: str,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    document = require_visible(db, document_id, viewer.person, viewer.privileged)
    return ratings.summary(db, document, viewer.person)


@router.post("/{document_id}/rating", response_model=RatingRead)
def rate_document(
    document_id: str,
    payload: RatingRequest,
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    document = require_visible(db, document_id, viewer.person, viewer.privileged)
    return ratings.rate(db, document, payload.score, viewer.person)


# ------------------------------------------------------------------
# Reports
# ------------------------------------------------------------------


@router.post(
    "/{document_id}/report",
    response_model=ReportRead,
    status_code=status.HTTP_201_CREATED,
)
def report_document(
    document_id: str,
    payload: ReportRequest,
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    return report_ledger.file_report(
        db,
        ReportTarget.document,
        document_id,
        viewer.person,
        payload.reason,
        privileged=viewer.privileged,
    )


@router.get(
    "/{document_id}/reports",
    response_model=list[ReportRead],
    dependencies=[Depends(require_admin)],
)
def list_document_reports(document_id: str, db: Session = Depends(get_db)):
    return report_ledger.list_document_reports(db, document_id)


@router.delete(
    "/{document_id}/reports",
    response_model=ReportClearResponse,
    dependencies=[Depends(require_admin)],
)
def clear_document_reports(document_id: str, db: Session = Depends(get_db)):
    return {"cleared": report_ledger.clear(db, document_id)}
