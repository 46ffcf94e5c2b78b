import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from docshare.db import run_after_commit
from docshare.errors import NotFoundError, ValidationError
from docshare.metrics import REVIEW_DECISIONS
from docshare.models.documents import Document, ReportTarget, ReviewAction, ReviewStatus
from docshare.models.person import Person
from docshare.services import documents as document_service
from docshare.services.common import normalize_text, parse_id
from docshare.services.notification import notification_dispatcher
from docshare.services.reports import report_ledger

logger = logging.getLogger(__name__)

_ACTION_ALIASES = {
    "APPROVE": ReviewAction.approve,
    "APPROVED": ReviewAction.approve,
    "REJECT": ReviewAction.reject,
    "REJECTED": ReviewAction.reject,
}


def _pending_clause():
    return func.upper(func.trim(Document.review_status)) == ReviewStatus.pending.value


def _count_decision(action: ReviewAction) -> None:
    REVIEW_DECISIONS.labels(action=action.value).inc()


def parse_action(action: str | None) -> ReviewAction:
    value = normalize_text(action)
    if not value:
        raise ValidationError("Review action is required")
    parsed = _ACTION_ALIASES.get(value.upper())
    if parsed is None:
        raise ValidationError(f"Unknown review action: {value}")
    return parsed


class ReviewWorkflow:
    @staticmethod
    def pending_count(db: Session) -> int:
        return db.scalar(select(func.count(Document.id)).where(_pending_clause())) or 0

    @staticmethod
    def submit(db: Session, document: Document) -> Document:
        """Put a document in the review queue and alert the moderators.

        Only flushes; ``Documents.store`` commits it together with the upload.
        """
        document.review_status = ReviewStatus.pending.value
        document.review_reason = None
        document.reviewed_by = None
        document.reviewed_at = None
        db.flush()
        notification_dispatcher.pending_review(
            db, document, ReviewWorkflow.pending_count(db)
        )
        logger.info("Submitted document %s for review", document.id)
        return document

    @staticmethod
    def decide(
        db: Session,
        document_id,
        action: str | None,
        reason: str | None,
        reviewer: Person,
    ) -> Document | None:
        """Apply a moderator decision.

        Returns the approved document, or ``None`` when the document was
        rejected and therefore deleted. Rejection requires a reason, checked
        before anything is touched. The decision, its notification and any
        cascade commit together.
        """
        if not normalize_text(action):
            raise ValidationError("Review action is required")
        document = db.get(Document, parse_id(document_id, "Document"))
        if not document:
            raise NotFoundError("Document not found")
        parsed = parse_action(action)
        reason = normalize_text(reason)
        if parsed == ReviewAction.reject and not reason:
            raise ValidationError("A reason is required to reject a document")

        document.reviewed_by = reviewer.email
        document.reviewed_at = datetime.now(timezone.utc)
        run_after_commit(db, _count_decision, parsed)

        if parsed == ReviewAction.approve:
            document.review_status = ReviewStatus.approved.value
            document.review_reason = None
            db.flush()
            notification_dispatcher.review_approved(db, document)
            db.commit()
            db.refresh(document)
            logger.info("Approved document %s by %s", document.id, reviewer.id)
            return document

        document.review_status = ReviewStatus.rejected.value
        document.review_reason = reason
        db.flush()
        notification_dispatcher.review_rejected(db, document, reason)
        document_service.documents.delete_cascade(db, document, reason="rejected")
        db.commit()
        logger.info("Rejected document %s by %s", document_id, reviewer.id)
        return None

    @staticmethod
    def admin_delete(db: Session, document_id, reason: str | None = None) -> None:
        document = db.get(Document, parse_id(document_id, "Document"))
        if not document:
            raise NotFoundError("Document not found")
        notification_dispatcher.document_removed(db, document, normalize_text(reason))
        document_service.documents.delete_cascade(db, document, reason="removed")
        db.commit()

    @staticmethod
    def list_pending(db: Session, limit: int = 50, offset: int = 0) -> list[dict]:
        stmt = (
            select(Document)
            .where(_pending_clause())
            .order_by(Document.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        pending = db.scalars(stmt).all()
        counts = report_ledger.count_for_many(
            db, ReportTarget.document, [d.id for d in pending]
        )
        return [
            {"document": document, "report_count": counts.get(document.id, 0)}
            for document in pending
        ]


review_workflow = ReviewWorkflow()
