from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from docshare.api.deps import Viewer, require_viewer
from docshare.db import get_db
from docshare.schemas.notification import (
    MarkAllReadResponse,
    NotificationRead,
    UnreadCountResponse,
)
from docshare.services.notification import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    viewer: Viewer = Depends(require_viewer), db: Session = Depends(get_db)
):
    return {"count": notifications.unread_count(db, viewer.person)}


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    return notifications.list_for(db, viewer.person, limit)


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    viewer: Viewer = Depends(require_viewer), db: Session = Depends(get_db)
):
    return {"marked": notifications.mark_all_read(db, viewer.person)}


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: str,
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    return notifications.mark_read(db, viewer.person, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: str,
    viewer: Viewer = Depends(require_viewer),
    db: Session = Depends(get_db),
):
    notifications.delete(db, viewer.person, notification_id)
