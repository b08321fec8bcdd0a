from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime

from labslot.core.exceptions import ValidationError


@dataclass(frozen=True)
class LayoutItem:
    item_id: str
    start: datetime
    end: datetime
    resource_ids: tuple[str, ...] = ()
    event_id: str | None = None

    @property
    def day(self) -> date:
        return self.start.date()


@dataclass(frozen=True)
class PackedItem:
    item: LayoutItem
    col: int
    cols: int


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


def ensure_valid_items(items: Iterable[LayoutItem]) -> None:
    """Reject items that end before they start, and batches mixing aware and naive dates."""
    aware: bool | None = None
    for item in items:
        item_aware = _is_aware(item.start)
        if item_aware != _is_aware(item.end) or (aware is not None and item_aware != aware):
            raise ValidationError(
                f"Layout item {item.item_id} mixes timezone-aware and naive dates",
                details={"item_id": item.item_id},
            )
        aware = item_aware
        if not item.start < item.end:
            raise ValidationError(
                f"Layout item {item.item_id} must end after it starts",
                details={"item_id": item.item_id},
            )


def sort_items(items: Iterable[LayoutItem]) -> list[LayoutItem]:
    return sorted(items, key=lambda item: (item.start, item.item_id, item.end))


def iter_clusters(ordered: Sequence[LayoutItem]) -> Iterator[list[LayoutItem]]:
    """Split start-sorted items into runs that overlap transitively.

    A new run starts when an item begins at or after the latest end seen in the
    current run; touching endpoints do not overlap.
    """
    cluster: list[LayoutItem] = []
    cluster_end = None
    for item in ordered:
        if cluster and item.start >= cluster_end:
            yield cluster
            cluster = []
            cluster_end = None
        cluster.append(item)
        if cluster_end is None or item.end > cluster_end:
            cluster_end = item.end
    if cluster:
        yield cluster


def pack_cluster(cluster: Sequence[LayoutItem]) -> list[PackedItem]:
    column_ends: list[datetime] = []
    assigned: list[tuple[LayoutItem, int]] = []
    for item in cluster:
        for index, column_end in enumerate(column_ends):
            if column_end <= item.start:
                column_ends[index] = item.end
                assigned.append((item, index))
                break
        else:
            column_ends.append(item.end)
            assigned.append((item, len(column_ends) - 1))

    cols = max(col for _, col in assigned) + 1 if assigned else 0
    return [PackedItem(item=item, col=col, cols=cols) for item, col in assigned]


def pack_columns(items: Iterable[LayoutItem]) -> list[PackedItem]:
    """Greedy interval colouring: overlapping items never share a column.

    ``cols`` is the column count of the item's own cluster, which equals the
    largest number of items overlapping at a single instant in that cluster.
    Output follows the (start, id) order and is identical across runs.
    """
    items = list(items)
    ensure_valid_items(items)
    ordered = sort_items(items)
    packed: list[PackedItem] = []
    for cluster in iter_clusters(ordered):
        packed.extend(pack_cluster(cluster))
    return packed


def max_columns(packed: Iterable[PackedItem]) -> int:
    return max((entry.cols for entry in packed), default=0)


def group_by_day(items: Iterable[LayoutItem]) -> dict[date, list[LayoutItem]]:
    grouped: dict[date, list[LayoutItem]] = defaultdict(list)
    for item in items:
        grouped[item.day].append(item)
    return {day: grouped[day] for day in sorted(grouped)}
