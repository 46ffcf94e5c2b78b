from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from docshare.config import settings
from docshare.db import run_after_commit
from docshare.errors import NotFoundError
from docshare.models.documents import Comment, Document, Notification, NotificationType
from docshare.models.person import Person
from docshare.services.common import normalize_text, parse_id
from docshare.services.event import EventType, publish_event
from docshare.services.identity import privileged_people

logger = logging.getLogger(__name__)

# Legacy rows only carry the reason inside the message text.
LEGACY_REASON_MARKER = "Reason:"
_EXCERPT_LIMIT = 80

_EVENT_BY_NOTIFICATION = {
    NotificationType.pending_review: EventType.document_submitted,
    NotificationType.review_approved: EventType.document_approved,
    NotificationType.review_rejected: EventType.document_rejected,
    NotificationType.document_removed: EventType.document_removed,
    NotificationType.document_reported: EventType.document_reported,
    NotificationType.subject_change: EventType.document_subject_changed,
    NotificationType.pending_subject: EventType.document_subject_pending,
    NotificationType.comment_removed: EventType.comment_removed,
    NotificationType.comment_reported: EventType.comment_reported,
}


# ---------------------------------------------------------------------------
# Delivery hand-off (after commit only)
# ---------------------------------------------------------------------------


def _publish_delivery(item: dict) -> None:
    notification_type = NotificationType(item["notification_type"])
    publish_event(
        _EVENT_BY_NOTIFICATION[notification_type],
        entity_type="document" if item["document_id"] else "notification",
        entity_id=item["document_id"] or item["notification_ids"][0],
        document_id=item["document_id"],
        payload=item,
    )


def _queue_delivery(db: Session, rows: list[Notification]) -> None:
    if not rows:
        return
    document_id = rows[0].document_id
    run_after_commit(
        db,
        _publish_delivery,
        {
            "notification_type": rows[0].notification_type,
            "notification_ids": [str(row.id) for row in rows],
            "document_id": str(document_id) if document_id else None,
        },
    )


# ---------------------------------------------------------------------------
# Message helpers
# ---------------------------------------------------------------------------


def document_display_title(document: Document | None) -> str:
    if document is None:
        return "document"
    for candidate in (document.title, document.file_name):
        if candidate and candidate.strip():
            return candidate.strip()
    return "document"


def _append_reason(base: str, reason: str | None) -> str:
    if not reason:
        return base
    return f"{base} {LEGACY_REASON_MARKER} {reason}"


def _reporter_name(reporter: Person | None) -> str:
    if reporter is None:
        return "A user"
    return reporter.name or "A user"


def comment_excerpt(content: str | None) -> str | None:
    if content is None:
        return None
    snippet = content.strip()
    if not snippet:
        return None
    if len(snippet) > _EXCERPT_LIMIT:
        snippet = snippet[: _EXCERPT_LIMIT - 3] + "..."
    return snippet


def extract_reason(notification: Notification) -> str | None:
    stored = normalize_text(notification.reason)
    if stored:
        return stored
    # Deprecated fallback for rows written before the reason column existed.
    message = notification.message or ""
    idx = message.find(LEGACY_REASON_MARKER)
    if idx < 0:
        return None
    return normalize_text(message[idx + len(LEGACY_REASON_MARKER):])


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class NotificationDispatcher:
    @staticmethod
    def to_owner(document: Document | None) -> list[Person]:
        if document is None or document.owner is None:
            return []
        return [document.owner]

    @staticmethod
    def to_privileged(db: Session) -> list[Person]:
        return privileged_people(db)

    @staticmethod
    def dispatch(
        db: Session,
        notification_type: NotificationType,
        recipients: Iterable[Person],
        message: str,
        document: Document | None = None,
        subject_name: str | None = None,
        reason: str | None = None,
        link_document: bool = True,
    ) -> list[Notification]:
        rows = []
        for person in recipients:
            notification = Notification(
                person_id=person.id,
                notification_type=notification_type.value,
                message=message,
                document_id=document.id if (document and link_document) else None,
                document_title=document_display_title(document) if document else None,
                subject_name=subject_name,
                reason=reason,
            )
            db.add(notification)
            rows.append(notification)
        if rows:
            db.flush()
            _queue_delivery(db, rows)
        logger.info(
            "Dispatched %d %s notifications", len(rows), notification_type.value
        )
        return rows

    # -- admin audience ---------------------------------------------------

    @staticmethod
    def pending_review(
        db: Session, document: Document, pending_count: int
    ) -> list[Notification]:
        title = document_display_title(document)
        count = pending_count if pending_count > 0 else 1
        message = (
            f'{count} document(s) awaiting review. "{title}" was just uploaded '
            "and is waiting for a decision"
        )
        if document.subject is not None and document.subject.name:
            message += f' for subject "{document.subject.name}"'
        message += "."
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.pending_review,
            NotificationDispatcher.to_privileged(db),
            message,
            document=document,
        )

    @staticmethod
    def comment_reported(
        db: Session, comment: Comment, reporter: Person, reason: str | None
    ) -> list[Notification]:
        document = comment.document
        title = document_display_title(document)
        excerpt = comment_excerpt(comment.content)
        if excerpt:
            base = f'{_reporter_name(reporter)} reported: "{excerpt}" in "{title}".'
        else:
            base = f'{_reporter_name(reporter)} reported a comment in "{title}".'
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.comment_reported,
            NotificationDispatcher.to_privileged(db),
            _append_reason(base, reason),
            document=document,
            reason=reason,
        )

    @staticmethod
    def document_reported(
        db: Session, document: Document, reporter: Person, reason: str | None
    ) -> list[Notification]:
        base = (
            f'{_reporter_name(reporter)} reported the document '
            f'"{document_display_title(document)}".'
        )
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.document_reported,
            NotificationDispatcher.to_privileged(db),
            _append_reason(base, reason),
            document=document,
            reason=reason,
        )

    # -- owner audience ---------------------------------------------------

    @staticmethod
    def review_approved(db: Session, document: Document) -> list[Notification]:
        message = (
            f'Your document "{document_display_title(document)}" was approved '
            "and is now public."
        )
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.review_approved,
            NotificationDispatcher.to_owner(document),
            message,
            document=document,
        )

    @staticmethod
    def review_rejected(
        db: Session, document: Document, reason: str
    ) -> list[Notification]:
        base = f'Your document "{document_display_title(document)}" was rejected in review.'
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.review_rejected,
            NotificationDispatcher.to_owner(document),
            _append_reason(base, reason),
            document=document,
            reason=reason,
            link_document=False,
        )

    @staticmethod
    def document_removed(
        db: Session, document: Document, reason: str | None
    ) -> list[Notification]:
        base = (
            f'Your document "{document_display_title(document)}" was removed '
            "by a moderator."
        )
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.document_removed,
            NotificationDispatcher.to_owner(document),
            _append_reason(base, reason),
            document=document,
            reason=reason,
            link_document=False,
        )

    @staticmethod
    def comment_removed(
        db: Session, comment: Comment, reason: str | None
    ) -> list[Notification]:
        if comment.author is None:
            return []
        document = comment.document
        if document is not None:
            base = (
                f'Your comment on "{document_display_title(document)}" was removed '
                "by a moderator."
            )
        else:
            base = "Your comment was removed by a moderator."
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.comment_removed,
            [comment.author],
            _append_reason(base, reason),
            document=document,
            reason=reason,
        )

    @staticmethod
    def subject_changed(
        db: Session,
        document: Document,
        previous_subject: str | None,
        new_subject: str | None,
    ) -> list[Notification]:
        title = document_display_title(document)
        target = new_subject or "a new subject"
        if previous_subject:
            message = (
                f'Your document "{title}" was moved from subject '
                f'"{previous_subject}" to "{target}".'
            )
        else:
            message = f'Your document "{title}" was assigned to subject "{target}".'
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.subject_change,
            NotificationDispatcher.to_owner(document),
            message,
            document=document,
            subject_name=new_subject,
        )

    @staticmethod
    def pending_subject(
        db: Session, document: Document, removed_subject: str | None
    ) -> list[Notification]:
        subject = removed_subject or "the removed subject"
        message = (
            f'"{document_display_title(document)}" needs a new subject because '
            f"{subject} no longer exists."
        )
        return NotificationDispatcher.dispatch(
            db,
            NotificationType.pending_subject,
            NotificationDispatcher.to_owner(document),
            message,
            document=document,
            subject_name=removed_subject,
        )


# ---------------------------------------------------------------------------
# Recipient operations
# ---------------------------------------------------------------------------


class Notifications:
    @staticmethod
    def _owned(db: Session, person: Person, notification_id: str) -> Notification:
        notification = db.get(Notification, parse_id(notification_id, "Notification"))
        if not notification or notification.person_id != person.id:
            raise NotFoundError("Notification not found")
        return notification

    @staticmethod
    def list_for(
        db: Session, person: Person, limit: int | None = None
    ) -> List[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.person_id == person.id)
            .order_by(Notification.created_at.desc())
            .limit(limit or settings.notification_list_limit)
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def unread_count(db: Session, person: Person) -> int:
        return (
            db.query(Notification)
            .filter(
                Notification.person_id == person.id,
                Notification.is_read.is_(False),
            )
            .count()
        )

    @staticmethod
    def mark_read(db: Session, person: Person, notification_id: str) -> Notification:
        notification = Notifications._owned(db, person, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(notification)
            logger.info("Marked notification %s as read", notification.id)
        return notification

    @staticmethod
    def mark_all_read(db: Session, person: Person) -> int:
        result = db.execute(
            update(Notification)
            .where(
                Notification.person_id == person.id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        marked = result.rowcount
        db.commit()
        logger.info(
            "Marked all %d notifications as read for person %s", marked, person.id
        )
        return marked

    @staticmethod
    def delete(db: Session, person: Person, notification_id: str) -> None:
        notification = Notifications._owned(db, person, notification_id)
        db.delete(notification)
        db.commit()
        logger.info("Deleted notification %s", notification_id)


notification_dispatcher = NotificationDispatcher()
notifications = Notifications()
