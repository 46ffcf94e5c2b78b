import logging
import mimetypes
import os

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from docshare.config import settings
from docshare.db import run_after_commit
from docshare.errors import NotFoundError, ValidationError
from docshare.metrics import DOCUMENTS_DELETED
from docshare.models.documents import (
    Comment,
    CommentReport,
    Document,
    DocumentReport,
    Notification,
    Rating,
    ReportTarget,
    Subject,
)
from docshare.models.person import Person
from docshare.services import review as review_service
from docshare.services.access import is_document_owner, require_visible, visible_filter
from docshare.services.common import (
    apply_ordering,
    apply_pagination,
    normalize_text,
    parse_id,
)
from docshare.services.interactions import interaction_aggregator, ratings
from docshare.services.preview import (
    UnsupportedFormat,
    render_placeholder,
    render_preview,
)
from docshare.services.reports import report_ledger
from docshare.services.storage import storage

logger = logging.getLogger(__name__)


def _extension(file_name: str | None) -> str:
    return os.path.splitext(file_name or "")[1].lower().lstrip(".")


def _discard_stored_file(storage_key: str | None, document_id) -> None:
    if not storage_key:
        return
    try:
        storage.delete(storage_key)
    except Exception:
        logger.warning(
            "Could not delete stored file %s for document %s",
            storage_key,
            document_id,
            exc_info=True,
        )


def _finish_delete(storage_key: str | None, document_id, reason: str) -> None:
    DOCUMENTS_DELETED.labels(reason=reason).inc()
    _discard_stored_file(storage_key, document_id)


class Documents:
    @staticmethod
    def store(
        db: Session,
        file_name: str | None,
        content: bytes,
        uploader: Person,
        subject_id=None,
        title: str | None = None,
        description: str | None = None,
        mime_type: str | None = None,
    ) -> Document:
        file_name = normalize_text(os.path.basename(file_name or ""))
        if not file_name:
            raise ValidationError("File name is required")
        if not content:
            raise ValidationError("Uploaded file is empty")
        if len(content) > settings.max_upload_size_bytes:
            raise ValidationError("Uploaded file exceeds the size limit")
        if subject_id is None:
            raise ValidationError("Subject is required")
        subject = db.get(Subject, parse_id(subject_id, "Subject"))
        if not subject:
            raise NotFoundError("Subject not found")

        document = Document(
            title=normalize_text(title) or os.path.splitext(file_name)[0] or file_name,
            description=normalize_text(description),
            file_name=file_name,
            storage_key=storage.generate_storage_key(file_name),
            mime_type=mime_type or mimetypes.guess_type(file_name)[0],
            file_size=len(content),
            owner_id=uploader.id,
            subject=subject,
        )
        db.add(document)
        db.flush()
        storage_key = document.storage_key
        storage.put(storage_key, content, document.mime_type)
        try:
            review_service.review_workflow.submit(db, document)
            db.commit()
        except Exception:
            _discard_stored_file(storage_key, None)
            raise
        db.refresh(document)
        logger.info("Created document %s for person %s", document.id, uploader.id)
        return document

    @staticmethod
    def list_visible(
        db: Session,
        viewer: Person | None,
        privileged: bool,
        subject_id=None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[Document]:
        query = db.query(Document).filter(visible_filter(viewer, privileged))
        if subject_id:
            query = query.filter(Document.subject_id == parse_id(subject_id, "Subject"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "title": Document.title,
                "download_count": Document.download_count,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def get_visible(
        db: Session, document_id, viewer: Person | None, privileged: bool
    ) -> Document:
        return require_visible(db, document_id, viewer, privileged)

    @staticmethod
    def detail(
        db: Session, document_id, viewer: Person | None, privileged: bool
    ) -> dict:
        document = require_visible(db, document_id, viewer, privileged)
        return {
            "document": document,
            "rating": ratings.summary(db, document, viewer),
            "comments": interaction_aggregator.build_thread(db, document, viewer),
            "viewer_is_uploader": is_document_owner(document, viewer),
            "viewer_is_privileged": privileged,
            "report_count": report_ledger.count_for(
                db, ReportTarget.document, document.id
            ),
            "reported_by_viewer": report_ledger.reported_by_viewer(
                db, ReportTarget.document, document.id, viewer.id if viewer else None
            ),
        }

    @staticmethod
    def download(
        db: Session, document_id, viewer: Person | None, privileged: bool
    ) -> tuple[Document, bytes]:
        document = require_visible(db, document_id, viewer, privileged)
        if not document.storage_key:
            raise NotFoundError("Stored file not found")
        try:
            data = storage.get(document.storage_key)
        except FileNotFoundError:
            raise NotFoundError("Stored file not found")
        db.execute(
            update(Document)
            .where(Document.id == document.id)
            .values(download_count=Document.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        db.refresh(document, ["download_count"])
        logger.info("Served download of document %s", document.id)
        return document, data

    @staticmethod
    def preview(
        db: Session, document_id, viewer: Person | None, privileged: bool
    ) -> bytes:
        document = require_visible(db, document_id, viewer, privileged)
        subtitle = document.subject.name if document.subject else None
        try:
            data = storage.get(document.storage_key) if document.storage_key else b""
            return render_preview(data, _extension(document.file_name))
        except (FileNotFoundError, UnsupportedFormat) as exc:
            logger.info("No preview for document %s: %s", document.id, exc)
        except Exception:
            logger.warning(
                "Preview rendering failed for document %s", document.id, exc_info=True
            )
        return render_placeholder(document.title, subtitle)

    @staticmethod
    def delete_cascade(db: Session, document: Document, reason: str = "admin") -> None:
        """Remove a document together with everything hanging off it.

        Notifications keep their cached title and only lose the link. Only
        flushes; the caller commits. The stored bytes are removed once that
        commit lands, on a best-effort basis, so a rolled-back delete keeps
        its file.
        """
        document_id = document.id
        storage_key = document.storage_key
        comment_ids = select(Comment.id).where(Comment.document_id == document_id)

        db.execute(
            delete(CommentReport)
            .where(CommentReport.comment_id.in_(comment_ids))
            .execution_options(synchronize_session=False)
        )
        db.execute(
            delete(Comment)
            .where(Comment.document_id == document_id)
            .execution_options(synchronize_session="fetch")
        )
        db.execute(
            delete(Rating)
            .where(Rating.document_id == document_id)
            .execution_options(synchronize_session="fetch")
        )
        db.execute(
            delete(DocumentReport)
            .where(DocumentReport.document_id == document_id)
            .execution_options(synchronize_session="fetch")
        )
        db.execute(
            update(Notification)
            .where(Notification.document_id == document_id)
            .values(document_id=None)
            .execution_options(synchronize_session="fetch")
        )
        db.delete(document)
        db.flush()
        run_after_commit(db, _finish_delete, storage_key, document_id, reason)
        logger.info("Deleted document %s", document_id)


documents = Documents()
