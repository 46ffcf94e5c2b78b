import logging

from docshare.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="docshare.tasks.notifications.deliver_notifications", ignore_result=True
)
def deliver_notifications(event_type: str, notification_ids: list[str]) -> None:
    """Hand stored notifications to the outbound channel.

    No e-mail or push transport is wired in yet. Rows that no
    longer exist (recipient deleted them) are skipped.
    """
    from docshare.db import SessionLocal

    db = SessionLocal()
    try:
        _deliver(db, event_type, notification_ids)
    except Exception as e:
        logger.exception("Failed to deliver notifications for %s: %s", event_type, e)
    finally:
        db.close()


def _deliver(
    db: "Session",  # type: ignore[name-defined]  # noqa: F821
    event_type: str,
    notification_ids: list[str],
) -> int:
    from docshare.models.documents import Notification
    from docshare.services.common import coerce_uuid

    delivered = 0
    for nid in notification_ids:
        notification = db.get(Notification, coerce_uuid(nid))
        if notification is None:
            continue
        logger.info(
            "Would deliver %s notification %s to person %s",
            notification.notification_type,
            notification.id,
            notification.person_id,
        )
        delivered += 1
    logger.info("Delivered %d notifications for event %s", delivered, event_type)
    return delivered
