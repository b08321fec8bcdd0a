from datetime import datetime, timezone

import pytest

from labslot.core.exceptions import ValidationError
from labslot.services.layout_engine import (
    LayoutItem,
    group_by_day,
    iter_clusters,
    max_columns,
    pack_columns,
    sort_items,
)


def _item(item_id, start, end, day=2, resources=()):
    return LayoutItem(
        item_id=item_id,
        start=datetime.fromisoformat(f"2026-03-0{day}T{start}"),
        end=datetime.fromisoformat(f"2026-03-0{day}T{end}"),
        resource_ids=tuple(resources),
    )


def _by_id(packed):
    return {entry.item.item_id: (entry.col, entry.cols) for entry in packed}


def test_overlapping_pair_then_free_item():
    items = [
        _item("A", "09:00", "11:00"),
        _item("B", "10:00", "12:00"),
        _item("C", "12:00", "13:00"),
    ]

    assert _by_id(pack_columns(items)) == {"A": (0, 2), "B": (1, 2), "C": (0, 1)}


def test_touching_items_share_a_column():
    items = [_item("A", "09:00", "10:00"), _item("B", "10:00", "11:00")]

    assert _by_id(pack_columns(items)) == {"A": (0, 1), "B": (0, 1)}


def test_freed_column_is_reused_inside_cluster():
    items = [
        _item("A", "08:00", "12:00"),
        _item("B", "08:30", "09:30"),
        _item("C", "10:00", "11:00"),
    ]

    assert _by_id(pack_columns(items)) == {"A": (0, 2), "B": (1, 2), "C": (1, 2)}


def test_columns_count_matches_peak_overlap():
    items = [
        _item("A", "08:00", "10:00"),
        _item("B", "08:00", "09:00"),
        _item("C", "08:00", "08:30"),
        _item("D", "09:30", "11:00"),
    ]

    packed = pack_columns(items)

    assert max_columns(packed) == 3
    for entry in packed:
        assert 0 <= entry.col < entry.cols


def test_overlapping_items_never_share_a_column():
    items = [
        _item("A", "08:00", "09:15"),
        _item("B", "08:45", "10:00"),
        _item("C", "09:00", "09:30"),
        _item("D", "09:20", "11:00"),
        _item("E", "10:30", "11:30"),
    ]

    packed = pack_columns(items)

    for left in packed:
        for right in packed:
            if left is right:
                continue
            overlap = left.item.start < right.item.end and right.item.start < left.item.end
            if overlap:
                assert left.col != right.col


def test_output_is_independent_of_input_order():
    items = [
        _item("B", "09:00", "10:00"),
        _item("A", "09:00", "10:00"),
        _item("C", "09:30", "11:00"),
    ]

    forward = pack_columns(items)
    backward = pack_columns(list(reversed(items)))

    assert forward == backward
    assert [entry.item.item_id for entry in forward] == ["A", "B", "C"]
    assert _by_id(forward) == {"A": (0, 3), "B": (1, 3), "C": (2, 3)}


def test_empty_input():
    assert pack_columns([]) == []
    assert max_columns([]) == 0


@pytest.mark.parametrize("end", ["09:00", "08:00"])
def test_invalid_item_is_rejected(end):
    with pytest.raises(ValidationError):
        pack_columns([_item("ok", "10:00", "11:00"), _item("bad", "09:00", end)])


def test_clusters_split_on_gap():
    ordered = sort_items(
        [
            _item("A", "08:00", "09:00"),
            _item("B", "08:30", "10:00"),
            _item("C", "10:00", "10:30"),
        ]
    )

    clusters = [[item.item_id for item in cluster] for cluster in iter_clusters(ordered)]

    assert clusters == [["A", "B"], ["C"]]


def test_group_by_day_sorts_days():
    items = [_item("late", "09:00", "10:00", day=4), _item("early", "09:00", "10:00", day=3)]

    grouped = group_by_day(items)

    assert [day.day for day in grouped] == [3, 4]
    assert grouped[items[0].day][0].item_id == "late"


def test_mixed_timezone_batch_is_rejected():
    naive = _item("A", "09:00", "10:00")
    aware = LayoutItem(
        item_id="B",
        start=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        end=datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc),
    )

    with pytest.raises(ValidationError) as excinfo:
        pack_columns([naive, aware])
    assert excinfo.value.details == {"item_id": "B"}


def test_aware_items_pack_like_naive_ones():
    utc = timezone.utc
    items = [
        LayoutItem(item_id="A", start=datetime(2026, 3, 2, 9, tzinfo=utc), end=datetime(2026, 3, 2, 11, tzinfo=utc)),
        LayoutItem(item_id="B", start=datetime(2026, 3, 2, 10, tzinfo=utc), end=datetime(2026, 3, 2, 12, tzinfo=utc)),
    ]

    assert _by_id(pack_columns(items)) == {"A": (0, 2), "B": (1, 2)}
