import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from labslot.api.deps import get_current_actor, get_db, require_roles
from labslot.models.room import Room
from labslot.schemas.calendar_event import Actor, ActorRole
from labslot.schemas.room import RoomCreate, RoomOut
from labslot.services import event_store
from labslot.services.audit import log_activity

router = APIRouter()


@router.get("/", response_model=list[RoomOut])
def list_rooms(current_actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> list[RoomOut]:
    return list(db.execute(select(Room).order_by(Room.name, Room.id)).scalars())


@router.post("/", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    current_actor: Actor = Depends(require_roles(ActorRole.validator)),
    db: Session = Depends(get_db),
) -> RoomOut:
    existing = db.execute(select(Room).where(Room.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room name already exists")
    room_id = payload.id or str(uuid.uuid4())
    if db.get(Room, room_id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room id already exists")
    room = Room(id=room_id, name=payload.name, capacity=payload.capacity, description=payload.description)
    db.add(room)
    log_activity(
        db,
        actor=current_actor,
        action="room.create",
        entity_type="room",
        entity_id=room_id,
        details={"name": payload.name},
    )
    event_store.commit(db)
    db.refresh(room)
    return room
