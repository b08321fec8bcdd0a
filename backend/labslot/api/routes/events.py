
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from labslot.api.deps import (
    get_current_actor,
    get_db,
    get_notification_hub,
    get_transition_policy,
)
from labslot.schemas.calendar_event import (
    Actor,
    CalendarEvent,
    CalendarEventCreate,
    EventState,
    SignatureOut,
    TransitionOut,
    TransitionRequest,
)
from labslot.services import event_store
from labslot.services.audit import log_activity
from labslot.services.notification_hub import NotificationHub
from labslot.services.notifications import publish_event_change
from labslot.services.slot_diff import signature
from labslot.services.state_machine import TransitionPolicy, apply_transition, create_event

router = APIRouter()


@router.get("/", response_model=list[CalendarEvent])
def list_events(
    discipline: str | None = Query(default=None, max_length=50),
    state: list[EventState] | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[CalendarEvent]:
    return event_store.list_events(db, discipline=discipline, states=state)


@router.post("/", response_model=CalendarEvent, status_code=status.HTTP_201_CREATED)
def create_calendar_event(
    payload: CalendarEventCreate,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> CalendarEvent:
    event = create_event(
        title=payload.title,
        actor=current_actor,
        slots=payload.slots,
        discipline=payload.discipline,
        event_id=payload.id,
        materials=payload.materials,
        documents=payload.documents,
    )
    event_store.insert_event(db, event)
    log_activity(
        db,
        actor=current_actor,
        action="event.create",
        entity_type="calendar_event",
        entity_id=event.id,
        details={"state": event.state.value, "slots": len(event.proposed_slots)},
    )
    event_store.commit(db)
    return event


@router.get("/{event_id}", response_model=CalendarEvent)
def get_calendar_event(
    event_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> CalendarEvent:
    return event_store.get_event(db, event_id)


@router.get("/{event_id}/signature", response_model=SignatureOut)
def get_event_signature(
    event_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> SignatureOut:
    event = event_store.get_event(db, event_id)
    return SignatureOut(event_id=event.id, signature=signature(event))


@router.post("/{event_id}/transitions", response_model=TransitionOut)
def transition_event(
    event_id: str,
    payload: TransitionRequest,
    current_actor: Actor = Depends(get_current_actor),
    policy: TransitionPolicy = Depends(get_transition_policy),
    hub: NotificationHub = Depends(get_notification_hub),
    db: Session = Depends(get_db),
) -> TransitionOut:
    event = event_store.get_event(db, event_id)
    result = apply_transition(
        event,
        payload.action,
        current_actor,
        reason=payload.reason,
        proposed_slots=payload.proposed_slots,
        slot_id=payload.slot_id,
        policy=policy,
    )

    observable = result.observable_change
    if observable:
        saved = event_store.save_event(db, result.event)
        observable = bool(saved)
    if observable:
        log_activity(
            db,
            actor=current_actor,
            action=f"event.{payload.action.value}",
            entity_type="calendar_event",
            entity_id=event_id,
            details={
                "from_state": event.state.value,
                "to_state": result.event.state.value,
                "slots_changed": result.slots_changed,
                "deleted_slot_ids": result.deleted_slot_ids,
                "slot_id": payload.slot_id,
                "reason": payload.reason or "",
            },
        )
        event_store.commit(db)
        publish_event_change(
            hub,
            result.event,
            actor=current_actor,
            action=payload.action.value,
            observable_change=True,
        )

    return TransitionOut(
        event=result.event,
        observable_change=observable,
        outcome="applied" if observable else "noop",
        deleted_slot_ids=result.deleted_slot_ids,
    )


@router.websocket("/ws/{user_id}")
async def event_updates_socket(websocket: WebSocket, user_id: str) -> None:
    hub: NotificationHub = websocket.app.state.notification_hub
    await websocket.accept()
    await hub.register(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.unregister(user_id, websocket)
