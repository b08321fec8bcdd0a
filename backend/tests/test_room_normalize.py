import pytest

from labslot.schemas.room import Room, normalize_room
from labslot.schemas.timeslot import TimeSlot


@pytest.mark.parametrize(
    ("value", "expected_id", "expected_name"),
    [
        ("Lab A", "Lab A", "Lab A"),
        ("  Lab A  ", "Lab A", "Lab A"),
        ('{"id": 12, "name": "Lab B"}', "12", "Lab B"),
        (7, "7", "7"),
        ({"name": "Lab C"}, "Lab C", "Lab C"),
        ({"id": "r9", "name": "Lab D", "capacity": 20}, "r9", "Lab D"),
        ("{not json", "{not json", "{not json"),
    ],
)
def test_room_references_normalise(value, expected_id, expected_name):
    room = normalize_room(value)
    assert room.id == expected_id
    assert room.name == expected_name


def test_room_instance_passes_through():
    room = Room(id="r1", name="Lab")
    assert normalize_room(room) is room


@pytest.mark.parametrize("value", [None, "", "   "])
def test_empty_references_are_dropped(value):
    assert normalize_room(value) is None


@pytest.mark.parametrize("value", [True, {"capacity": 3}, 1.5j])
def test_bad_references_are_rejected(value):
    with pytest.raises(ValueError):
        normalize_room(value)


def test_slot_resource_ids_are_normalised_and_deduplicated():
    slot = TimeSlot(resource_ids=["r1", {"id": "r1", "name": "Lab"}, 4, '{"id": "r2"}', None, ""])
    assert slot.resource_ids == ["r1", "4", "r2"]


def test_slot_accepts_single_room_reference():
    assert TimeSlot(resourceIds="Lab A").resource_ids == ["Lab A"]
