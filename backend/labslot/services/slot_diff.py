"""Change detection for time slots and events.

Two jobs: keep slot audit trails free of entries for saves that did not
change anything, and give callers a canonical event signature so that a
round trip of identical data does not raise a "changed" notification.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import uuid

from labslot.core.exceptions import ValidationError
from labslot.schemas.calendar_event import CalendarEvent
from labslot.schemas.timeslot import AuditAction, AuditEntry, SlotStatus, TimeSlot

SLOT_ID_NAMESPACE = uuid.UUID("7c1f9a56-4a4e-5b7a-9d59-2f0a3c6e8b11")


@dataclass(frozen=True)
class ReconciledSlots:
    slots: list[TimeSlot]
    deleted_ids: list[str] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    modified_ids: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.deleted_ids or self.created_ids or self.modified_ids)


def _normalized_notes(value: str | None) -> str:
    return (value or "").strip()


def _comparable(slot: TimeSlot) -> tuple:
    return (
        slot.start_date,
        slot.end_date,
        slot.status,
        frozenset(slot.resource_ids),
        frozenset(slot.group_ids),
        _normalized_notes(slot.notes),
    )


def slot_changed(a: TimeSlot, b: TimeSlot) -> bool:
    """Structural comparison; ids, authorship and audit history are ignored."""
    return _comparable(a) != _comparable(b)


def slot_sets_differ(left: Sequence[TimeSlot], right: Sequence[TimeSlot]) -> bool:
    if len(left) != len(right):
        return True
    right_by_id = {slot.id: slot for slot in right}
    if len(right_by_id) != len(right):
        return True
    for slot in left:
        other = right_by_id.get(slot.id)
        if other is None or slot_changed(slot, other):
            return True
    return False


def _now(value: datetime | None) -> datetime:
    return value if value is not None else datetime.now(timezone.utc)


def _derived_slot_id(slot: TimeSlot, actor_id: str, position: int, taken: set[str]) -> str:
    start = slot.start_date.isoformat() if slot.start_date else ""
    end = slot.end_date.isoformat() if slot.end_date else ""
    base = f"{actor_id}|{start}|{end}|{position}"
    attempt = 0
    while True:
        seed = base if attempt == 0 else f"{base}|{attempt}"
        candidate = str(uuid.uuid5(SLOT_ID_NAMESPACE, seed))
        if candidate not in taken:
            return candidate
        attempt += 1


def reconcile_slots(
    new_slots: Sequence[TimeSlot],
    original_slots: Sequence[TimeSlot],
    actor_id: str,
    *,
    now: datetime | None = None,
    reserved_ids: Iterable[str] = (),
) -> ReconciledSlots:
    """Merge an edited slot list into the stored one, appending audit entries only for real changes.

    Slots are matched by id. Originals missing from ``new_slots`` are reported in
    ``deleted_ids`` for the caller to soft-delete; they are not part of the result.
    ``reserved_ids`` lists ids that must not be handed out to new slots (for
    instance soft-deleted history kept next to the active set). A new slot
    that arrives carrying a reserved id is given a fresh one.
    """
    timestamp = _now(now)
    originals = {slot.id: slot for slot in original_slots if slot.id is not None}

    seen_new: set[str] = set()
    for slot in new_slots:
        if slot.id is None:
            continue
        if slot.id in seen_new:
            raise ValidationError(f"Duplicate slot id {slot.id} in proposal", details={"slot_id": slot.id})
        seen_new.add(slot.id)

    reserved = set(reserved_ids) - set(originals)
    taken = set(originals) | seen_new | reserved
    result: list[TimeSlot] = []
    created_ids: list[str] = []
    modified_ids: list[str] = []

    for position, slot in enumerate(new_slots):
        original = originals.get(slot.id) if slot.id is not None else None
        if original is None:
            slot_id = slot.id
            if slot_id is None or slot_id in reserved:
                slot_id = _derived_slot_id(slot, actor_id, position, taken)
                taken.add(slot_id)
            result.append(
                slot.model_copy(
                    update={
                        "id": slot_id,
                        "created_by": actor_id,
                        "modified_by": [
                            AuditEntry(user_id=actor_id, timestamp=timestamp, action=AuditAction.created)
                        ],
                    },
                    deep=True,
                )
            )
            created_ids.append(slot_id)
            continue

        if not slot_changed(slot, original):
            result.append(original.model_copy(deep=True))
            continue

        history = [entry.model_copy() for entry in original.modified_by]
        history.append(AuditEntry(user_id=actor_id, timestamp=timestamp, action=AuditAction.modified))
        result.append(
            slot.model_copy(
                update={"created_by": original.created_by, "modified_by": history},
                deep=True,
            )
        )
        modified_ids.append(original.id)

    deleted_ids = [slot.id for slot in original_slots if slot.id is not None and slot.id not in seen_new]
    return ReconciledSlots(
        slots=result,
        deleted_ids=deleted_ids,
        created_ids=created_ids,
        modified_ids=modified_ids,
    )


def soft_delete_slots(
    slots: Sequence[TimeSlot],
    ids: Iterable[str],
    actor_id: str,
    *,
    now: datetime | None = None,
) -> list[TimeSlot]:
    timestamp = _now(now)
    targets = set(ids)
    out: list[TimeSlot] = []
    for slot in slots:
        if slot.id not in targets or slot.status == SlotStatus.deleted:
            out.append(slot.model_copy(deep=True))
            continue
        history = [entry.model_copy() for entry in slot.modified_by]
        history.append(AuditEntry(user_id=actor_id, timestamp=timestamp, action=AuditAction.deleted))
        out.append(slot.model_copy(update={"status": SlotStatus.deleted, "modified_by": history}, deep=True))
    return out


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _canonical_slot(slot: TimeSlot) -> dict:
    return {
        "id": slot.id,
        "start": _iso(slot.start_date),
        "end": _iso(slot.end_date),
        "status": slot.status.value,
        "resources": sorted(slot.resource_ids),
        "groups": sorted(slot.group_ids),
        "notes": _normalized_notes(slot.notes),
    }


def _canonical_slots(slots: Iterable[TimeSlot]) -> list[dict]:
    active = [_canonical_slot(slot) for slot in slots if slot.is_active]
    return sorted(active, key=lambda item: (item["id"] or "", item["start"] or "", item["end"] or ""))


def canonical_event(event: CalendarEvent) -> dict:
    return {
        "title": event.title.strip(),
        "state": event.state.value,
        "proposed": _canonical_slots(event.proposed_slots),
        "accepted": _canonical_slots(event.accepted_slots),
        "materials": sorted(
            [material.id, material.quantity, material.unit or ""] for material in event.materials
        ),
        "documents": sorted({document for document in event.documents if document}),
        "reason": _normalized_notes(event.state_change_reason),
    }


def signature(event: CalendarEvent) -> str:
    """Deterministic serialisation of everything a user could notice about the event."""
    return json.dumps(canonical_event(event), sort_keys=True, separators=(",", ":"))


def has_observable_change(before: CalendarEvent | None, after: CalendarEvent) -> bool:
    if before is None:
        return True
    return signature(before) != signature(after)
