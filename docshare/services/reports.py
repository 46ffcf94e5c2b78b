import logging
import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docshare.db import run_after_commit
from docshare.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from docshare.metrics import REPORTS_FILED
from docshare.models.documents import (
    Comment,
    CommentReport,
    Document,
    DocumentReport,
    ReportTarget,
)
from docshare.models.person import Person
from docshare.services.access import require_visible
from docshare.services.common import normalize_text, parse_id
from docshare.services.notification import notification_dispatcher

logger = logging.getLogger(__name__)


def _count_report(target: ReportTarget) -> None:
    REPORTS_FILED.labels(target=target.value).inc()


def _model_for(target: ReportTarget):
    if target == ReportTarget.document:
        return DocumentReport, DocumentReport.document_id
    return CommentReport, CommentReport.comment_id


class ReportLedger:
    @staticmethod
    def file_report(
        db: Session,
        target: ReportTarget,
        target_id,
        reporter: Person | None,
        reason: str | None = None,
        document_id=None,
        privileged: bool = False,
    ):
        """Record one abuse report and alert every privileged user.

        A reporter may flag a given document or comment at most once; the
        unique constraint decides, so concurrent duplicates end in
        ``ConflictError`` instead of a second row.
        """
        if reporter is None:
            raise ForbiddenError("Sign in to report content")
        reason = normalize_text(reason)

        if target == ReportTarget.document:
            document = require_visible(db, target_id, reporter, privileged)
            if document.owner_id == reporter.id:
                raise ForbiddenError("You cannot report your own document")
            report = DocumentReport(
                document_id=document.id, reporter_id=reporter.id, reason=reason
            )
            duplicate_message = "You have already reported this document"
        else:
            comment = db.get(Comment, parse_id(target_id, "Comment"))
            if not comment:
                raise NotFoundError("Comment not found")
            if document_id is not None and comment.document_id != parse_id(
                document_id, "Document"
            ):
                raise ValidationError("Comment does not belong to this document")
            require_visible(db, comment.document_id, reporter, privileged)
            if comment.author_id == reporter.id:
                raise ForbiddenError("You cannot report your own comment")
            report = CommentReport(
                comment_id=comment.id, reporter_id=reporter.id, reason=reason
            )
            duplicate_message = "You have already reported this comment"

        try:
            with db.begin_nested():
                db.add(report)
                db.flush()
        except IntegrityError:
            raise ConflictError(duplicate_message)

        if target == ReportTarget.document:
            notification_dispatcher.document_reported(db, document, reporter, reason)
        else:
            notification_dispatcher.comment_reported(db, comment, reporter, reason)
        run_after_commit(db, _count_report, target)
        db.commit()
        db.refresh(report)
        logger.info(
            "Created %s report %s by person %s", target.value, report.id, reporter.id
        )
        return report

    @staticmethod
    def count_for(db: Session, target: ReportTarget, target_id) -> int:
        model, column = _model_for(target)
        return db.scalar(
            select(func.count(model.id)).where(column == parse_id(target_id))
        ) or 0

    @staticmethod
    def count_for_many(
        db: Session, target: ReportTarget, target_ids
    ) -> dict[uuid.UUID, int]:
        ids = [tid for tid in target_ids if tid is not None]
        if not ids:
            return {}
        model, column = _model_for(target)
        rows = db.execute(
            select(column, func.count(model.id))
            .where(column.in_(ids))
            .group_by(column)
        ).all()
        return {row[0]: row[1] for row in rows}

    @staticmethod
    def reported_by_viewer(
        db: Session, target: ReportTarget, target_id, viewer_id
    ) -> bool:
        if viewer_id is None:
            return False
        model, column = _model_for(target)
        found = db.scalar(
            select(model.id).where(
                column == parse_id(target_id), model.reporter_id == viewer_id
            )
        )
        return found is not None

    @staticmethod
    def reported_ids_by_viewer(
        db: Session, target: ReportTarget, target_ids, viewer_id
    ) -> set[uuid.UUID]:
        ids = [tid for tid in target_ids if tid is not None]
        if viewer_id is None or not ids:
            return set()
        model, column = _model_for(target)
        return set(
            db.scalars(
                select(column).where(column.in_(ids), model.reporter_id == viewer_id)
            ).all()
        )

    @staticmethod
    def list_document_reports(db: Session, document_id) -> list[DocumentReport]:
        document = db.get(Document, parse_id(document_id, "Document"))
        if not document:
            raise NotFoundError("Document not found")
        stmt = (
            select(DocumentReport)
            .where(DocumentReport.document_id == document.id)
            .order_by(DocumentReport.created_at.desc())
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def clear(db: Session, document_id) -> int:
        document = db.get(Document, parse_id(document_id, "Document"))
        if not document:
            raise NotFoundError("Document not found")
        result = db.execute(
            delete(DocumentReport).where(DocumentReport.document_id == document.id)
        )
        cleared = result.rowcount
        db.commit()
        logger.info("Cleared %d reports for document %s", cleared, document_id)
        return cleared


report_ledger = ReportLedger()
