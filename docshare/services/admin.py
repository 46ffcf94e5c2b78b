"""Site-wide figures and account administration for moderators."""

import logging
from datetime import datetime, time, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from docshare.errors import NotFoundError, ValidationError
from docshare.models.documents import Comment, Document, ReportTarget
from docshare.models.person import Person, Role
from docshare.services.common import normalize_text, parse_id
from docshare.services.reports import report_ledger

logger = logging.getLogger(__name__)

RECENT_DOCUMENT_LIMIT = 20


def _start_of_today() -> datetime:
    today = datetime.now(timezone.utc).date()
    return datetime.combine(today, time.min, tzinfo=timezone.utc)


def _resolve_role(db: Session, role_id, role_name: str | None) -> Role:
    if role_id is not None:
        role = db.get(Role, parse_id(role_id, "Role"))
    else:
        name = normalize_text(role_name)
        if not name:
            raise ValidationError("Role is required")
        role = db.scalars(
            select(Role).where(func.lower(Role.name) == name.lower())
        ).first()
    if not role:
        raise NotFoundError("Role not found")
    return role


class AdminConsole:
    @staticmethod
    def overview(db: Session) -> dict:
        return {
            "total_users": db.scalar(select(func.count(Person.id))) or 0,
            "active_users": db.scalar(
                select(func.count(Person.id)).where(Person.is_active.is_(True))
            )
            or 0,
            "total_documents": db.scalar(select(func.count(Document.id))) or 0,
            "total_downloads": db.scalar(
                select(func.coalesce(func.sum(Document.download_count), 0))
            )
            or 0,
            "documents_today": db.scalar(
                select(func.count(Document.id)).where(
                    Document.created_at >= _start_of_today()
                )
            )
            or 0,
            "total_comments": db.scalar(select(func.count(Comment.id))) or 0,
        }

    @staticmethod
    def recent_documents(db: Session, limit: int = RECENT_DOCUMENT_LIMIT) -> list[dict]:
        """Newest uploads in any review state, each with its report count."""
        stmt = select(Document).order_by(Document.created_at.desc()).limit(limit)
        recent = db.scalars(stmt).all()
        counts = report_ledger.count_for_many(
            db, ReportTarget.document, [d.id for d in recent]
        )
        return [
            {"document": document, "report_count": counts.get(document.id, 0)}
            for document in recent
        ]

    @staticmethod
    def update_role(
        db: Session, person_id, role_id=None, role_name: str | None = None
    ) -> Person:
        person = db.get(Person, parse_id(person_id, "Person"))
        if not person:
            raise NotFoundError("Person not found")
        role = _resolve_role(db, role_id, role_name)
        person.role = role
        db.commit()
        db.refresh(person)
        logger.info("Assigned role %s to person %s", role.name, person.id)
        return person


admin_console = AdminConsole()
