import logging

from docshare.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="docshare.tasks.events.process_event", ignore_result=True)
def process_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    actor_id: str | None = None,
    document_id: str | None = None,
    payload: dict | None = None,
) -> None:
    """Central fan-out task for moderation and interaction events.

    Notification rows are already committed by the request that raised the
    event; this only hands their ids to the delivery task.
    """
    payload = payload or {}
    logger.info("Processing event %s for %s/%s", event_type, entity_type, entity_id)

    notification_ids = payload.get("notification_ids") or []
    if notification_ids:
        _fanout_delivery(event_type, notification_ids)


def _fanout_delivery(event_type: str, notification_ids: list[str]) -> None:
    try:
        from docshare.tasks.notifications import deliver_notifications

        deliver_notifications.delay(
            event_type=event_type, notification_ids=notification_ids
        )
    except Exception as e:
        logger.exception("Failed to fan-out notification delivery: %s", e)
