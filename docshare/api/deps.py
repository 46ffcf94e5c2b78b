from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from docshare.db import get_db
from docshare.models.person import Person
from docshare.services.identity import is_privileged, resolve_viewer


@dataclass
class Viewer:
    person: Person | None
    privileged: bool


def get_viewer(
    x_viewer: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Viewer:
    """Resolve the caller named by the auth gateway's ``X-Viewer`` header."""
    person = resolve_viewer(db, x_viewer)
    if x_viewer and person is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown viewer"
        )
    if person is not None and not person.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Viewer is inactive"
        )
    return Viewer(person=person, privileged=is_privileged(person))


def require_viewer(viewer: Viewer = Depends(get_viewer)) -> Viewer:
    if viewer.person is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required"
        )
    return viewer


def require_admin(viewer: Viewer = Depends(require_viewer)) -> Viewer:
    if not viewer.privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Administrator role required"
        )
    return viewer
