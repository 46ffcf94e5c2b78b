"""Viewer resolution and the privileged-role predicate.

Privilege is always read from the current role rows; nothing here caches a
role list, so promoting or demoting someone takes effect on the next call.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from docshare.config import settings
from docshare.models.person import Person, Role

logger = logging.getLogger(__name__)


def resolve_viewer(db: Session, identifier: str | uuid.UUID | None) -> Person | None:
    if identifier is None:
        return None
    if isinstance(identifier, uuid.UUID):
        return db.get(Person, identifier)
    value = identifier.strip()
    if not value:
        return None
    try:
        return db.get(Person, uuid.UUID(value))
    except ValueError:
        pass
    return db.scalars(
        select(Person).where(func.lower(func.trim(Person.email)) == value.lower())
    ).first()


def is_privileged(person: Person | None) -> bool:
    if person is None or person.role is None:
        return False
    name = person.role.name or ""
    return name.strip().lower() == settings.admin_role_name.lower()


def privileged_people(db: Session) -> list[Person]:
    people = db.scalars(
        select(Person).join(Role, Person.role_id == Role.id).order_by(Person.created_at)
    ).all()
    admins = [p for p in people if is_privileged(p)]
    logger.debug("Resolved %d privileged recipients", len(admins))
    return admins
