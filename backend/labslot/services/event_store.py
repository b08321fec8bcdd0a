"""Conversion between stored event rows and ``CalendarEvent`` values.

Writes are last-write-wins. Before writing, the stored signature is compared
with the new one; an identical signature means there is nothing to persist
and ``NO_OP`` is returned instead.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labslot.core.exceptions import NO_OP, NoOpChange, PersistenceError, ResourceNotFoundError
from labslot.models.calendar_event import CalendarEventRecord, EventStateColumn
from labslot.schemas.calendar_event import CalendarEvent, EventState
from labslot.services.slot_diff import signature

logger = logging.getLogger(__name__)


def record_to_event(record: CalendarEventRecord) -> CalendarEvent:
    return CalendarEvent.model_validate(
        {
            "id": record.id,
            "title": record.title,
            "discipline": record.discipline,
            "ownerId": record.owner_id,
            "state": record.state.value,
            "proposedSlots": record.proposed_slots or [],
            "acceptedSlots": record.accepted_slots or [],
            "proposedBy": record.proposed_by,
            "lastStateChange": record.last_state_change,
            "stateChangeReason": record.state_change_reason,
            "materials": record.materials or [],
            "documents": record.documents or [],
        }
    )


def _columns(event: CalendarEvent) -> dict:
    return {
        "title": event.title,
        "discipline": event.discipline,
        "owner_id": event.owner_id,
        "state": EventStateColumn(event.state.value),
        "proposed_slots": [slot.model_dump(mode="json", by_alias=True) for slot in event.proposed_slots],
        "accepted_slots": [slot.model_dump(mode="json", by_alias=True) for slot in event.accepted_slots],
        "proposed_by": event.proposed_by,
        "last_state_change": (
            event.last_state_change.model_dump(mode="json", by_alias=True)
            if event.last_state_change is not None
            else None
        ),
        "state_change_reason": event.state_change_reason,
        "materials": [material.model_dump(mode="json") for material in event.materials],
        "documents": list(event.documents),
        "signature": signature(event),
    }


def get_event(db: Session, event_id: str) -> CalendarEvent:
    try:
        record = db.get(CalendarEventRecord, event_id)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Unable to load event {event_id}") from exc
    if record is None:
        raise ResourceNotFoundError("Event", event_id)
    return record_to_event(record)


def list_events(
    db: Session,
    *,
    discipline: str | None = None,
    states: Iterable[EventState] | None = None,
) -> list[CalendarEvent]:
    query = select(CalendarEventRecord).order_by(CalendarEventRecord.created_at, CalendarEventRecord.id)
    if discipline:
        query = query.where(CalendarEventRecord.discipline == discipline)
    if states:
        query = query.where(CalendarEventRecord.state.in_([EventStateColumn(state.value) for state in states]))
    try:
        records = list(db.execute(query).scalars())
    except SQLAlchemyError as exc:
        raise PersistenceError("Unable to list events") from exc
    return [record_to_event(record) for record in records]


def insert_event(db: Session, event: CalendarEvent) -> CalendarEvent:
    record = CalendarEventRecord(id=event.id, **_columns(event))
    try:
        db.add(record)
        db.flush()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Failed to insert event %s", event.id, exc_info=True)
        raise PersistenceError(f"Unable to store event {event.id}") from exc
    return event


def save_event(db: Session, event: CalendarEvent) -> CalendarEvent | NoOpChange:
    try:
        record = db.get(CalendarEventRecord, event.id)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Unable to load event {event.id}") from exc
    if record is None:
        raise ResourceNotFoundError("Event", event.id)

    columns = _columns(event)
    if record.signature == columns["signature"] and record.proposed_by == columns["proposed_by"]:
        logger.debug("event %s unchanged against stored copy, skipping write", event.id)
        return NO_OP

    try:
        for key, value in columns.items():
            setattr(record, key, value)
        db.flush()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Failed to save event %s", event.id, exc_info=True)
        raise PersistenceError(f"Unable to save event {event.id}") from exc
    return event


def commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Commit failed", exc_info=True)
        raise PersistenceError("Unable to commit changes") from exc
