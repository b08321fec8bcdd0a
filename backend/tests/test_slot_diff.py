from datetime import datetime

import pytest

from conftest import make_slot
from labslot.core.exceptions import ValidationError
from labslot.schemas.calendar_event import CalendarEvent, MaterialRef
from labslot.schemas.timeslot import AuditAction, AuditEntry, SlotStatus, TimeSlot
from labslot.services.slot_diff import (
    has_observable_change,
    reconcile_slots,
    signature,
    slot_changed,
    soft_delete_slots,
)


def test_identical_slots_are_not_changed():
    slot = make_slot("s1", "09:00", "10:00", rooms=["r1", "r2"], groups=["g1"])
    copy = TimeSlot.model_validate(slot.model_dump())

    assert slot_changed(slot, slot) is False
    assert slot_changed(slot, copy) is False
    assert copy is not slot


def test_resource_and_group_order_does_not_matter():
    a = make_slot("s1", "09:00", "10:00", rooms=["r1", "r2"], groups=["g2", "g1"])
    b = make_slot("s1", "09:00", "10:00", rooms=["r2", "r1"], groups=["g1", "g2"])

    assert slot_changed(a, b) is False


@pytest.mark.parametrize(
    "update",
    [
        {"start_date": datetime(2026, 3, 2, 8, 30)},
        {"end_date": datetime(2026, 3, 2, 10, 30)},
        {"status": SlotStatus.deleted},
        {"resource_ids": ["r1", "r3"]},
        {"group_ids": []},
        {"notes": "bring goggles"},
    ],
)
def test_any_compared_field_counts_as_change(update):
    base = make_slot("s1", "09:00", "10:00", rooms=["r1"], groups=["g1"])
    assert slot_changed(base, base.model_copy(update=update)) is True


def test_audit_history_and_author_are_ignored(now):
    base = make_slot("s1", "09:00", "10:00")
    annotated = base.model_copy(
        update={
            "created_by": "someone-else",
            "modified_by": [AuditEntry(user_id="x", timestamp=now, action=AuditAction.modified)],
        }
    )
    assert slot_changed(base, annotated) is False


def test_reconcile_identical_slot_keeps_audit_trail(now):
    original = make_slot(
        "s1",
        "09:00",
        "10:00",
        created_by="prof-1",
        modified_by=[AuditEntry(user_id="prof-1", timestamp=now, action=AuditAction.created)],
    )
    resubmitted = TimeSlot.model_validate(original.model_dump())

    result = reconcile_slots([resubmitted], [original], "lab-1", now=now)

    assert len(result.slots) == 1
    assert len(result.slots[0].modified_by) == 1
    assert result.deleted_ids == []
    assert result.changed is False


def test_reconcile_changed_end_appends_one_modified_entry(now):
    original = make_slot(
        "s1",
        "09:00",
        "10:00",
        created_by="prof-1",
        modified_by=[AuditEntry(user_id="prof-1", timestamp=now, action=AuditAction.created)],
    )
    edited = original.model_copy(update={"end_date": datetime(2026, 3, 2, 11, 0), "modified_by": []})

    result = reconcile_slots([edited], [original], "lab-1", now=now)

    slot = result.slots[0]
    assert slot.end_date == datetime(2026, 3, 2, 11, 0)
    assert len(slot.modified_by) == 2
    assert slot.modified_by[-1].action == AuditAction.modified
    assert slot.modified_by[-1].user_id == "lab-1"
    assert slot.created_by == "prof-1"
    assert result.modified_ids == ["s1"]


def test_reconcile_new_and_removed_slots(now):
    kept = make_slot("s1", "09:00", "10:00")
    removed = make_slot("s2", "13:00", "14:00")
    fresh = make_slot(None, "15:00", "16:00")

    result = reconcile_slots([kept, fresh], [kept, removed], "prof-1", now=now)

    assert result.deleted_ids == ["s2"]
    new_slot = result.slots[1]
    assert new_slot.id is not None
    assert new_slot.created_by == "prof-1"
    assert [entry.action for entry in new_slot.modified_by] == [AuditAction.created]
    assert result.created_ids == [new_slot.id]


def test_reconcile_is_deterministic(now):
    fresh = [make_slot(None, "15:00", "16:00"), make_slot(None, "15:00", "16:00")]

    first = reconcile_slots(fresh, [], "prof-1", now=now)
    second = reconcile_slots(fresh, [], "prof-1", now=now)

    assert [slot.id for slot in first.slots] == [slot.id for slot in second.slots]
    assert first.slots[0].id != first.slots[1].id


def test_reconcile_does_not_reuse_reserved_ids(now):
    fresh = make_slot(None, "15:00", "16:00")
    taken = reconcile_slots([fresh], [], "prof-1", now=now).slots[0].id

    result = reconcile_slots([fresh], [], "prof-1", now=now, reserved_ids=[taken])

    assert result.slots[0].id != taken


def test_reconcile_rejects_duplicate_ids(now):
    slot = make_slot("s1", "09:00", "10:00")
    with pytest.raises(ValidationError):
        reconcile_slots([slot, slot], [], "prof-1", now=now)


def test_soft_delete_marks_status_and_audits_once(now):
    slot = make_slot("s1", "09:00", "10:00")
    deleted = soft_delete_slots([slot], ["s1"], "lab-1", now=now)
    again = soft_delete_slots(deleted, ["s1"], "lab-1", now=now)

    assert deleted[0].status == SlotStatus.deleted
    assert [entry.action for entry in again[0].modified_by] == [AuditAction.deleted]
    assert slot.status == SlotStatus.active


def _event(**overrides):
    data = {
        "id": "e1",
        "title": "TP titration",
        "owner_id": "prof-1",
        "proposed_slots": [make_slot("s1", "09:00", "10:00", rooms=["r1", "r2"])],
        "accepted_slots": [make_slot("s1", "09:00", "10:00", rooms=["r1", "r2"])],
        "materials": [MaterialRef(id="m2", quantity=1), MaterialRef(id="m1", quantity=3)],
        "documents": ["b.pdf", "a.pdf"],
    }
    data.update(overrides)
    return CalendarEvent(**data)


def test_signature_is_stable_and_order_insensitive():
    event = _event()
    reordered = _event(
        proposed_slots=[make_slot("s1", "09:00", "10:00", rooms=["r2", "r1"])],
        materials=[MaterialRef(id="m1", quantity=3), MaterialRef(id="m2", quantity=1)],
        documents=["a.pdf", "b.pdf"],
    )

    assert signature(event) == signature(event)
    assert signature(event) == signature(reordered)
    assert has_observable_change(event, reordered) is False


def test_signature_tracks_slot_and_material_changes():
    event = _event()
    moved = _event(proposed_slots=[make_slot("s1", "10:00", "11:00", rooms=["r1", "r2"])])
    more_material = _event(materials=[MaterialRef(id="m1", quantity=4), MaterialRef(id="m2", quantity=1)])

    assert signature(event) != signature(moved)
    assert signature(event) != signature(more_material)


def test_signature_ignores_deleted_slots():
    event = _event()
    with_history = _event(
        proposed_slots=[
            make_slot("s1", "09:00", "10:00", rooms=["r1", "r2"]),
            make_slot("s0", "08:00", "09:00", status=SlotStatus.deleted),
        ]
    )
    assert signature(event) == signature(with_history)


def test_new_slot_reusing_a_reserved_id_gets_a_fresh_one(now):
    returning = make_slot("s2", "14:00", "15:00")

    result = reconcile_slots([returning], [], "lab-1", now=now, reserved_ids=["s2"])

    assert result.slots[0].id != "s2"
    assert result.created_ids == [result.slots[0].id]
    assert result.slots[0].start_date == returning.start_date
