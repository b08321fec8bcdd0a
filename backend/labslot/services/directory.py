from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labslot.core.config import get_settings
from labslot.core.exceptions import PersistenceError
from labslot.models.room import Room as RoomRecord
from labslot.schemas.room import Room


class ResourceDirectory:
    """id -> display name lookup used to label and order occupancy lanes."""

    def __init__(self, names: Mapping[str, str] | None = None, *, label_template: str | None = None) -> None:
        self._names = dict(names or {})
        self._template = label_template or get_settings().resource_label_template

    @classmethod
    def from_rooms(cls, rooms: Iterable[Room], *, label_template: str | None = None) -> "ResourceDirectory":
        return cls({room.id: room.name for room in rooms}, label_template=label_template)

    def label(self, resource_id: str) -> str:
        name = self._names.get(resource_id)
        if name:
            return name
        return self._template.format(id=resource_id)

    def sort_key(self, resource_id: str) -> tuple[str, str, str]:
        label = self.label(resource_id)
        return (label.casefold(), label, resource_id)


def load_directory(db: Session) -> ResourceDirectory:
    try:
        records = list(db.execute(select(RoomRecord)).scalars())
    except SQLAlchemyError as exc:
        raise PersistenceError("Unable to load the room directory") from exc
    return ResourceDirectory.from_rooms(Room.model_validate(record) for record in records)
