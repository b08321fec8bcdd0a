from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from labslot.schemas.room import normalize_room


class SlotStatus(str, Enum):
    active = "active"
    deleted = "deleted"


class AuditAction(str, Enum):
    created = "created"
    modified = "modified"
    deleted = "deleted"


class AuditEntry(BaseModel):
    user_id: str = Field(alias="userId", min_length=1, max_length=100)
    timestamp: datetime
    action: AuditAction

    model_config = {"populate_by_name": True}


def _unique_ids(values: list[Any]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value is None:
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            key = str(int(value))
        else:
            key = str(value).strip()
        if key:
            seen.setdefault(key, None)
    return list(seen)


class TimeSlot(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: datetime | None = Field(default=None, alias="startDate")
    end_date: datetime | None = Field(default=None, alias="endDate")
    status: SlotStatus = SlotStatus.active
    resource_ids: list[str] = Field(default_factory=list, alias="resourceIds")
    group_ids: list[str] = Field(default_factory=list, alias="groupIds")
    notes: str | None = None
    created_by: str | None = Field(default=None, alias="createdBy")
    modified_by: list[AuditEntry] = Field(default_factory=list, alias="modifiedBy")

    model_config = {"populate_by_name": True}

    @field_validator("resource_ids", mode="before")
    @classmethod
    def normalize_resource_ids(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple, set, frozenset)):
            value = [value]
        rooms = [normalize_room(item) for item in value]
        return _unique_ids([room.id for room in rooms if room is not None])

    @field_validator("group_ids", mode="before")
    @classmethod
    def normalize_group_ids(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple, set, frozenset)):
            value = [value]
        return _unique_ids(list(value))

    @property
    def is_active(self) -> bool:
        return self.status == SlotStatus.active
