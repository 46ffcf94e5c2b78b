import logging

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from docshare.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from docshare.models.documents import Document, Subject
from docshare.models.person import Person
from docshare.services.access import is_document_owner, visible_filter
from docshare.services.common import parse_id
from docshare.services.notification import notification_dispatcher

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 150


def sanitize_name(name: str | None) -> str:
    cleaned = " ".join((name or "").split())
    if not cleaned:
        raise ValidationError("Subject name is required")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Subject name must be at most {MAX_NAME_LENGTH} characters"
        )
    return cleaned


def _ensure_unique(db: Session, name: str, exclude_id=None) -> None:
    stmt = select(Subject.id).where(func.lower(Subject.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Subject.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError("A subject with this name already exists")


def _get_subject(db: Session, subject_id) -> Subject:
    if subject_id is None:
        raise ValidationError("Subject is required")
    subject = db.get(Subject, parse_id(subject_id, "Subject"))
    if not subject:
        raise NotFoundError("Subject not found")
    return subject


class Subjects:
    @staticmethod
    def list_with_counts(db: Session) -> list[dict]:
        stmt = (
            select(Subject, func.count(Document.id))
            .outerjoin(
                Document,
                and_(Document.subject_id == Subject.id, visible_filter(None, False)),
            )
            .group_by(Subject.id)
            .order_by(Subject.name)
        )
        return [
            {"id": subject.id, "name": subject.name, "document_count": count}
            for subject, count in db.execute(stmt).all()
        ]

    @staticmethod
    def create(db: Session, name: str | None) -> Subject:
        cleaned = sanitize_name(name)
        _ensure_unique(db, cleaned)
        subject = Subject(name=cleaned)
        db.add(subject)
        db.commit()
        db.refresh(subject)
        logger.info("Created subject %s", subject.id)
        return subject

    @staticmethod
    def rename(db: Session, subject_id, name: str | None) -> Subject:
        subject = _get_subject(db, subject_id)
        cleaned = sanitize_name(name)
        _ensure_unique(db, cleaned, exclude_id=subject.id)
        subject.name = cleaned
        db.commit()
        db.refresh(subject)
        logger.info("Renamed subject %s", subject.id)
        return subject

    @staticmethod
    def delete(db: Session, subject_id) -> int:
        """Delete a subject and park its documents for reclassification.

        Every affected document loses its subject, is flagged as pending a
        subject, and its owner is told which subject disappeared.
        """
        subject = _get_subject(db, subject_id)
        removed_name = subject.name
        affected = db.scalars(
            select(Document).where(Document.subject_id == subject.id)
        ).all()
        for document in affected:
            document.subject = None
            document.pending_subject = True
        db.flush()
        for document in affected:
            notification_dispatcher.pending_subject(db, document, removed_name)
        db.delete(subject)
        db.commit()
        logger.info(
            "Deleted subject %s; %d documents await a new subject",
            subject_id,
            len(affected),
        )
        return len(affected)


def assign_subject(
    db: Session,
    document_id,
    subject_id,
    requester: Person | None,
    privileged: bool,
) -> Document:
    if requester is None:
        raise ForbiddenError("Sign in to classify documents")
    document = db.get(Document, parse_id(document_id, "Document"))
    if not document:
        raise NotFoundError("Document not found")
    owner = is_document_owner(document, requester)
    if not owner and not privileged:
        raise ForbiddenError("Only the uploader can classify this document")
    if document.subject_id is not None and not document.pending_subject and not privileged:
        raise ValidationError("Document is already classified")

    subject = _get_subject(db, subject_id)
    previous = document.subject.name if document.subject else None
    document.subject = subject
    document.pending_subject = False
    db.flush()
    if privileged and not owner:
        notification_dispatcher.subject_changed(db, document, previous, subject.name)
    db.commit()
    db.refresh(document)
    logger.info("Assigned subject %s to document %s", subject.id, document.id)
    return document


def change_subject(db: Session, document_id, subject_id) -> Document:
    document = db.get(Document, parse_id(document_id, "Document"))
    if not document:
        raise NotFoundError("Document not found")
    subject = _get_subject(db, subject_id)
    previous = document.subject.name if document.subject else None
    document.subject = subject
    document.pending_subject = False
    db.flush()
    notification_dispatcher.subject_changed(db, document, previous, subject.name)
    db.commit()
    db.refresh(document)
    logger.info("Changed subject of document %s to %s", document.id, subject.id)
    return document


subjects = Subjects()
