from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from labslot.api.deps import get_db, require_roles
from labslot.models.activity_log import ActivityLog
from labslot.schemas.activity import ActivityLogOut
from labslot.schemas.calendar_event import Actor, ActorRole

router = APIRouter()


@router.get("/activity/logs", response_model=list[ActivityLogOut])
def list_activity_logs(
    entity_id: str | None = Query(default=None, max_length=100),
    actor_id: str | None = Query(default=None, max_length=100),
    current_actor: Actor = Depends(require_roles(ActorRole.validator)),
    db: Session = Depends(get_db),
) -> list[ActivityLogOut]:
    query = select(ActivityLog)
    if entity_id:
        query = query.where(ActivityLog.entity_id == entity_id)
    if actor_id:
        query = query.where(ActivityLog.actor_id == actor_id)
    query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id).limit(500)
    return list(db.execute(query).scalars())
