"""Comment threads and ratings for a single document.

``InteractionAggregator.build_thread`` merges the flat comment and rating
rows into the nested view shown under a document: each root comment carries
its author's star score, ratings without a root comment become rating-only
nodes, and every node is annotated with report counts.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docshare.config import settings
from docshare.errors import ForbiddenError, NotFoundError, ValidationError
from docshare.models.documents import (
    Comment,
    CommentReport,
    Document,
    Rating,
    ReportTarget,
)
from docshare.models.person import Person
from docshare.services.access import is_document_owner
from docshare.services.common import normalize_text, parse_id
from docshare.services.notification import notification_dispatcher
from docshare.services.reports import report_ledger
from docshare.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5
_RATING_SEQ_MASK = (1 << 63) - 1


@dataclass
class CommentNode:
    id: uuid.UUID | int
    content: str | None
    created_at: datetime | None
    author_id: uuid.UUID | None = None
    author_name: str | None = None
    author_email: str | None = None
    author_role: str | None = None
    author_avatar_url: str | None = None
    rating_score: int | None = None
    rating_only: bool = False
    author_is_uploader: bool = False
    parent_id: uuid.UUID | None = None
    report_count: int = 0
    reported_by_viewer: bool = False
    replies: list[CommentNode] = field(default_factory=list)


def avatar_url(person: Person | None) -> str | None:
    if person is None or not person.avatar_path:
        return None
    return f"{settings.avatar_url_prefix.rstrip('/')}/{person.avatar_path}"


def rating_only_id(rating: Rating) -> int:
    # Always negative so it never collides with a comment id.
    return -((rating.id.int & _RATING_SEQ_MASK) or 1)


def _timestamp(value: datetime | None) -> float | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _newest_first(items, stamp):
    # Missing timestamps lead.
    return sorted(
        items,
        key=lambda item: (stamp(item) is None, stamp(item) or 0.0),
        reverse=True,
    )


def _oldest_first(items, stamp):
    # Missing timestamps trail.
    return sorted(
        items, key=lambda item: (stamp(item) is None, stamp(item) or 0.0)
    )


def _node_stamp(node: CommentNode) -> float | None:
    return _timestamp(node.created_at)


def _sort_replies(node: CommentNode) -> None:
    node.replies = _oldest_first(node.replies, _node_stamp)
    for reply in node.replies:
        _sort_replies(reply)


def _author_fields(person: Person | None, document: Document) -> dict:
    if person is None:
        return {}
    return {
        "author_id": person.id,
        "author_name": person.name,
        "author_email": person.email,
        "author_role": person.role_name,
        "author_avatar_url": avatar_url(person),
        "author_is_uploader": is_document_owner(document, person),
    }


class InteractionAggregator:
    @staticmethod
    def build_thread(
        db: Session, document: Document, viewer: Person | None = None
    ) -> list[CommentNode]:
        comments = _newest_first(
            db.scalars(select(Comment).where(Comment.document_id == document.id)).all(),
            lambda c: _timestamp(c.created_at),
        )
        ratings = _newest_first(
            db.scalars(select(Rating).where(Rating.document_id == document.id)).all(),
            lambda r: _timestamp(r.rated_at),
        )

        unconsumed: dict[uuid.UUID, Rating] = {}
        for rating in ratings:
            unconsumed.setdefault(rating.person_id, rating)

        comment_ids = [c.id for c in comments]
        report_counts = report_ledger.count_for_many(
            db, ReportTarget.comment, comment_ids
        )
        viewer_reports = report_ledger.reported_ids_by_viewer(
            db, ReportTarget.comment, comment_ids, viewer.id if viewer else None
        )

        arena: dict[uuid.UUID, CommentNode] = {}
        for comment in comments:
            node = CommentNode(
                id=comment.id,
                content=comment.content,
                created_at=comment.created_at,
                parent_id=comment.parent_id,
                report_count=report_counts.get(comment.id, 0),
                reported_by_viewer=comment.id in viewer_reports,
                **_author_fields(comment.author, document),
            )
            if comment.parent_id is None and comment.author_id is not None:
                rating = unconsumed.pop(comment.author_id, None)
                if rating is not None:
                    node.rating_score = rating.score
            arena[comment.id] = node

        roots: list[CommentNode] = []
        for comment in comments:
            node = arena[comment.id]
            parent = arena.get(comment.parent_id) if comment.parent_id else None
            if parent is not None:
                parent.replies.append(node)
            else:
                roots.append(node)

        for rating in unconsumed.values():
            roots.append(
                CommentNode(
                    id=rating_only_id(rating),
                    content=None,
                    created_at=rating.rated_at,
                    rating_score=rating.score,
                    rating_only=True,
                    **_author_fields(rating.person, document),
                )
            )

        roots = _newest_first(roots, _node_stamp)
        for root in roots:
            _sort_replies(root)
        return roots


class Comments(ListResponseMixin):
    @staticmethod
    def add(
        db: Session,
        document: Document,
        content: str | None,
        parent_id,
        author: Person | None,
    ) -> Comment:
        if author is None:
            raise ForbiddenError("Sign in to comment")
        content = normalize_text(content)
        if not content:
            raise ValidationError("Comment content is required")

        parent = None
        if parent_id is not None:
            parent = db.get(Comment, parse_id(parent_id, "Parent comment"))
            if not parent:
                raise NotFoundError("Parent comment not found")
            if parent.document_id != document.id:
                raise ValidationError("Parent comment belongs to another document")

        if parent is None and not is_document_owner(document, author):
            has_rating = db.scalar(
                select(Rating.id).where(
                    Rating.document_id == document.id,
                    Rating.person_id == author.id,
                )
            )
            if has_rating is None:
                raise ValidationError("Rate the document before commenting")

        comment = Comment(
            document_id=document.id,
            parent_id=parent.id if parent else None,
            author_id=author.id,
            content=content,
        )
        db.add(comment)
        db.commit()
        db.refresh(comment)
        logger.info("Created comment %s on document %s", comment.id, document.id)
        return comment

    @staticmethod
    def subtree_ids(db: Session, comment: Comment) -> list[uuid.UUID]:
        rows = db.execute(
            select(Comment.id, Comment.parent_id).where(
                Comment.document_id == comment.document_id
            )
        ).all()
        children: dict[uuid.UUID, list[uuid.UUID]] = {}
        for row_id, parent_id in rows:
            if parent_id is not None:
                children.setdefault(parent_id, []).append(row_id)
        ids = []
        stack = [comment.id]
        while stack:
            current = stack.pop()
            ids.append(current)
            stack.extend(children.get(current, []))
        return ids

    @staticmethod
    def admin_delete(db: Session, comment_id, reason: str | None = None) -> int:
        comment = db.get(Comment, parse_id(comment_id, "Comment"))
        if not comment:
            raise NotFoundError("Comment not found")
        notification_dispatcher.comment_removed(db, comment, normalize_text(reason))

        ids = Comments.subtree_ids(db, comment)
        db.execute(delete(CommentReport).where(CommentReport.comment_id.in_(ids)))
        db.execute(delete(Comment).where(Comment.id.in_(ids)))
        db.commit()
        logger.info("Deleted comment %s and %d replies", comment_id, len(ids) - 1)
        return len(ids)

    @staticmethod
    def list(db: Session, limit: int, offset: int) -> list[dict]:
        stmt = (
            select(Comment)
            .order_by(Comment.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = db.scalars(stmt).all()
        counts = report_ledger.count_for_many(
            db, ReportTarget.comment, [c.id for c in rows]
        )
        return [
            {
                "id": c.id,
                "document_id": c.document_id,
                "document_title": c.document.title if c.document else None,
                "parent_id": c.parent_id,
                "author_id": c.author_id,
                "author_name": c.author.name if c.author else None,
                "content": c.content,
                "created_at": c.created_at,
                "report_count": counts.get(c.id, 0),
            }
            for c in rows
        ]


class Ratings:
    @staticmethod
    def rate(db: Session, document: Document, score, person: Person | None) -> Rating:
        if person is None:
            raise ForbiddenError("Sign in to rate documents")
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError("Score must be a whole number")
        if score < MIN_SCORE or score > MAX_SCORE:
            raise ValidationError(f"Score must be between {MIN_SCORE} and {MAX_SCORE}")
        if is_document_owner(document, person):
            raise ForbiddenError("You cannot rate your own document")

        rating = Ratings._existing(db, document.id, person.id)
        if rating is None:
            try:
                with db.begin_nested():
                    rating = Rating(
                        document_id=document.id, person_id=person.id, score=score
                    )
                    db.add(rating)
                    db.flush()
                db.commit()
                db.refresh(rating)
                logger.info("Created rating %s on document %s", rating.id, document.id)
                return rating
            except IntegrityError:
                # Lost an insert race with the same person; fall through to update.
                rating = Ratings._existing(db, document.id, person.id)
                if rating is None:
                    raise
        rating.score = score
        rating.rated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(rating)
        logger.info("Updated rating %s on document %s", rating.id, document.id)
        return rating

    @staticmethod
    def _existing(db: Session, document_id, person_id) -> Rating | None:
        return db.scalars(
            select(Rating).where(
                Rating.document_id == document_id, Rating.person_id == person_id
            )
        ).first()

    @staticmethod
    def summary(db: Session, document: Document, viewer: Person | None = None) -> dict:
        average, total = db.execute(
            select(func.avg(Rating.score), func.count(Rating.id)).where(
                Rating.document_id == document.id
            )
        ).one()
        user_score = None
        if viewer is not None:
            user_score = db.scalar(
                select(Rating.score).where(
                    Rating.document_id == document.id,
                    Rating.person_id == viewer.id,
                )
            )
        return {
            "average": round(float(average), 1) if average is not None else 0.0,
            "total": total or 0,
            "user_score": user_score,
        }


interaction_aggregator = InteractionAggregator()
comments = Comments()
ratings = Ratings()
