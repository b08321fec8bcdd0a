from __future__ import annotations

from sqlalchemy.orm import Session

from labslot.models.activity_log import ActivityLog
from labslot.schemas.calendar_event import Actor


def log_activity(
    db: Session,
    *,
    actor: Actor | None,
    action: str,
    entity_type: str = "calendar_event",
    entity_id: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Stage an activity row in the caller's transaction; the caller commits."""
    record = ActivityLog(
        actor_id=actor.user_id if actor is not None else None,
        actor_role=actor.role.value if actor is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=dict(details or {}),
    )
    db.add(record)
    return record
