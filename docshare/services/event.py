import enum
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    document_submitted = "document.submitted"
    document_approved = "document.approved"
    document_rejected = "document.rejected"
    document_removed = "document.removed"
    document_reported = "document.reported"
    document_subject_changed = "document.subject_changed"
    document_subject_pending = "document.subject_pending"

    comment_removed = "comment.removed"
    comment_reported = "comment.reported"


def _as_str(value: str | uuid.UUID | None) -> str | None:
    return str(value) if value else None


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | uuid.UUID,
    actor_id: str | uuid.UUID | None = None,
    document_id: str | uuid.UUID | None = None,
    payload: dict | None = None,
) -> None:
    """Queue a moderation event for the worker.

    The worker forwards the notification ids in ``payload`` to outbound
    delivery. Never raises; a broker outage is logged and the rows stay
    readable in-app.
    """
    message = {
        "event_type": event_type.value,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "actor_id": _as_str(actor_id),
        "document_id": _as_str(document_id),
        "payload": payload or {},
    }
    try:
        from docshare.tasks.events import process_event

        process_event.delay(**message)
    except Exception:
        logger.exception("Could not queue %s event for %s", event_type.value, entity_id)
        return
    logger.debug("Queued %s event for %s/%s", event_type.value, entity_type, entity_id)
