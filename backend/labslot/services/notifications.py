from __future__ import annotations

from datetime import datetime, timezone
import logging

from anyio import from_thread

from labslot.schemas.calendar_event import Actor, CalendarEvent
from labslot.services.notification_hub import NotificationHub

logger = logging.getLogger(__name__)


def event_change_payload(event: CalendarEvent, *, actor: Actor, action: str) -> dict:
    return {
        "event": "event.updated",
        "calendar_event": {
            "id": event.id,
            "title": event.title,
            "state": event.state.value,
            "validation_state": event.validation_state.value,
        },
        "action": action,
        "actor_id": actor.user_id,
        "sent_at": datetime.now(timezone.utc).isoformat(),
    }


def change_recipients(event: CalendarEvent, actor: Actor) -> list[str]:
    candidates = [event.owner_id, event.proposed_by]
    if event.last_state_change is not None:
        candidates.append(event.last_state_change.user_id)
    return [user_id for user_id in dict.fromkeys(candidates) if user_id and user_id != actor.user_id]


def publish_event_change(
    hub: NotificationHub,
    event: CalendarEvent,
    *,
    actor: Actor,
    action: str,
    observable_change: bool,
) -> bool:
    """Push a realtime message if, and only if, something observable changed."""
    if not observable_change:
        return False
    recipients = change_recipients(event, actor)
    if not recipients:
        return False
    payload = event_change_payload(event, actor=actor, action=action)
    try:
        from_thread.run(hub.publish_many, recipients, payload)
    except Exception:  # pragma: no cover - runtime environment dependent
        logger.debug("Unable to push realtime update for event %s", event.id, exc_info=True)
    return True
