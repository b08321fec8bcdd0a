from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from labslot.api.deps import get_current_actor, get_db
from labslot.schemas.calendar_event import Actor, EventState
from labslot.schemas.layout import LayoutRequest, PlacementOut
from labslot.services import event_store
from labslot.services.directory import load_directory
from labslot.services.layout_engine import LayoutItem
from labslot.services.occupancy import LayoutMode, layout, project_events

router = APIRouter()

# Cancelled bookings keep their slots for history but no longer occupy a room.
OCCUPYING_STATES = [EventState.pending, EventState.validated, EventState.moved, EventState.in_progress]


@router.post("/layout", response_model=list[PlacementOut])
def compute_layout(
    payload: LayoutRequest,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[PlacementOut]:
    items = [
        LayoutItem(
            item_id=item.id,
            start=item.start,
            end=item.end,
            resource_ids=tuple(item.resource_ids),
            event_id=item.event_id,
        )
        for item in payload.items
    ]
    directory = load_directory(db) if payload.mode == LayoutMode.by_resource else None
    results = layout(items, payload.mode, resource_filter=payload.resource_filter, directory=directory)
    return [PlacementOut.model_validate(result) for result in results]


@router.get("/occupancy", response_model=list[PlacementOut])
def occupancy(
    mode: LayoutMode = Query(default=LayoutMode.by_resource),
    resource_id: list[str] | None = Query(default=None),
    discipline: str | None = Query(default=None, max_length=50),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[PlacementOut]:
    events = event_store.list_events(db, discipline=discipline, states=OCCUPYING_STATES)
    results = project_events(
        events,
        mode,
        resource_filter=resource_id,
        directory=load_directory(db),
        window_start=start,
        window_end=end,
    )
    return [PlacementOut.model_validate(result) for result in results]
