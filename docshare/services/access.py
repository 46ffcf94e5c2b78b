"""Who may see a document.

Every read path (listing, single fetch, detail, comments, rating summary,
preview, download) goes through ``can_view`` or its SQL twin
``visible_filter``; the two must stay in agreement.
"""

from sqlalchemy import func, or_, true
from sqlalchemy.orm import Session

from docshare.errors import ForbiddenError, NotFoundError
from docshare.models.documents import Document, ReviewStatus
from docshare.models.person import Person
from docshare.services.common import parse_id


def normalize_review_status(status: str | None) -> str:
    # Rows from before moderation carry no status and count as approved.
    if status is None or not status.strip():
        return ReviewStatus.approved.value
    return status.strip().upper()


def effective_review_status(document: Document) -> str:
    return normalize_review_status(document.review_status)


def is_approved(document: Document | None) -> bool:
    if document is None:
        return False
    return effective_review_status(document) == ReviewStatus.approved.value


def is_document_owner(document: Document | None, person: Person | None) -> bool:
    if document is None or person is None or document.owner_id is None:
        return False
    return document.owner_id == person.id


def can_view(document: Document, viewer: Person | None, viewer_is_privileged: bool) -> bool:
    if viewer_is_privileged:
        return True
    if is_approved(document):
        return True
    return is_document_owner(document, viewer)


def visible_filter(viewer: Person | None, viewer_is_privileged: bool):
    if viewer_is_privileged:
        return true()
    approved = or_(
        Document.review_status.is_(None),
        func.trim(Document.review_status) == "",
        func.upper(func.trim(Document.review_status)) == ReviewStatus.approved.value,
    )
    if viewer is None:
        return approved
    return or_(approved, Document.owner_id == viewer.id)


def require_visible(
    db: Session,
    document_id,
    viewer: Person | None,
    viewer_is_privileged: bool,
) -> Document:
    document = db.get(Document, parse_id(document_id, "Document"))
    if not document:
        raise NotFoundError("Document not found")
    if not can_view(document, viewer, viewer_is_privileged):
        raise ForbiddenError("You do not have access to this document")
    return document
