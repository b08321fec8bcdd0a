"""Occupancy projection: turn booked slots into render-ready column geometry.

``by_booking`` lays out one item per slot per day. ``by_resource`` expands a
slot into one item per room it uses, packs each room's lane on its own and
then places the lanes side by side in one shared column space, so every room
gets the same width on the grid.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from labslot.core.exceptions import ValidationError
from labslot.schemas.calendar_event import CalendarEvent
from labslot.services.directory import ResourceDirectory
from labslot.services.layout_engine import LayoutItem, ensure_valid_items, group_by_day, pack_columns


class LayoutMode(str, Enum):
    by_booking = "byBooking"
    by_resource = "byResource"


@dataclass(frozen=True)
class LayoutResult:
    item_id: str
    col: int
    cols: int
    day: date
    start: datetime
    end: datetime
    lane_resource_id: str | None = None
    lane_label: str | None = None
    event_id: str | None = None


def _layout_by_booking(items: Sequence[LayoutItem]) -> list[LayoutResult]:
    results: list[LayoutResult] = []
    for day, day_items in group_by_day(items).items():
        for packed in pack_columns(day_items):
            results.append(
                LayoutResult(
                    item_id=packed.item.item_id,
                    col=packed.col,
                    cols=packed.cols,
                    day=day,
                    start=packed.item.start,
                    end=packed.item.end,
                    event_id=packed.item.event_id,
                )
            )
    return results


def _expand_by_resource(
    items: Sequence[LayoutItem],
    allowed: set[str] | None,
) -> dict[str, list[LayoutItem]]:
    lanes: dict[str, list[LayoutItem]] = defaultdict(list)
    for item in items:
        for resource_id in dict.fromkeys(item.resource_ids):
            if allowed is not None and resource_id not in allowed:
                continue
            lanes[resource_id].append(item)
    return lanes


def _layout_by_resource(
    items: Sequence[LayoutItem],
    allowed: set[str] | None,
    directory: ResourceDirectory,
) -> list[LayoutResult]:
    lanes = _expand_by_resource(items, allowed)
    lane_order = sorted(lanes, key=directory.sort_key)

    packed_lanes = []
    max_sub_cols = 0
    for resource_id in lane_order:
        per_day = [
            (day, pack_columns(day_items)) for day, day_items in group_by_day(lanes[resource_id]).items()
        ]
        for _, packed in per_day:
            for entry in packed:
                max_sub_cols = max(max_sub_cols, entry.cols)
        packed_lanes.append((resource_id, per_day))

    total_cols = len(lane_order) * max_sub_cols
    results: list[LayoutResult] = []
    for lane_index, (resource_id, per_day) in enumerate(packed_lanes):
        label = directory.label(resource_id)
        offset = lane_index * max_sub_cols
        for day, packed in per_day:
            for entry in packed:
                results.append(
                    LayoutResult(
                        item_id=entry.item.item_id,
                        col=entry.col + offset,
                        cols=total_cols,
                        day=day,
                        start=entry.item.start,
                        end=entry.item.end,
                        lane_resource_id=resource_id,
                        lane_label=label,
                        event_id=entry.item.event_id,
                    )
                )
    return results


def layout(
    items: Iterable[LayoutItem],
    mode: LayoutMode | str = LayoutMode.by_booking,
    resource_filter: Iterable[str] | None = None,
    directory: ResourceDirectory | None = None,
) -> list[LayoutResult]:
    try:
        mode = LayoutMode(mode)
    except ValueError as exc:
        raise ValidationError(f"Unknown layout mode {mode!r}") from exc
    items = list(items)
    ensure_valid_items(items)
    allowed = {str(resource_id) for resource_id in resource_filter} if resource_filter else None

    if mode == LayoutMode.by_booking:
        if allowed is not None:
            items = [item for item in items if allowed.intersection(item.resource_ids)]
        return _layout_by_booking(items)
    return _layout_by_resource(items, allowed, directory or ResourceDirectory())


def items_from_events(
    events: Iterable[CalendarEvent],
    *,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
) -> list[LayoutItem]:
    items: list[LayoutItem] = []
    for event in events:
        for slot in event.active_accepted_slots:
            if slot.id is None or slot.start_date is None or slot.end_date is None:
                continue
            if window_end is not None and slot.start_date >= window_end:
                continue
            if window_start is not None and slot.end_date <= window_start:
                continue
            items.append(
                LayoutItem(
                    item_id=slot.id,
                    start=slot.start_date,
                    end=slot.end_date,
                    resource_ids=tuple(slot.resource_ids),
                    event_id=event.id,
                )
            )
    return items


def project_events(
    events: Iterable[CalendarEvent],
    mode: LayoutMode | str = LayoutMode.by_resource,
    *,
    resource_filter: Iterable[str] | None = None,
    directory: ResourceDirectory | None = None,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
) -> list[LayoutResult]:
    items = items_from_events(events, window_start=window_start, window_end=window_end)
    return layout(items, mode, resource_filter=resource_filter, directory=directory)
