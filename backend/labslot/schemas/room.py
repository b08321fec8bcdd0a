from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Room(BaseModel):
    """Normalised room value. Every room reference is parsed into this once."""

    id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    capacity: int | None = Field(default=None, ge=0)
    description: str | None = None

    model_config = {"from_attributes": True}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value


class RoomCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    capacity: int | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=500)


class RoomOut(Room):
    pass


def normalize_room(value: Any) -> Room | None:
    """Parse a room reference given as a name, a JSON string, an id or a mapping."""
    if value is None:
        return None
    if isinstance(value, Room):
        return value
    if isinstance(value, bool):
        raise ValueError("Invalid room reference")
    if isinstance(value, (int, float)):
        room_id = str(int(value))
        return Room(id=room_id, name=room_id)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if stripped.startswith("{"):
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError:
                return Room(id=stripped, name=stripped)
            if isinstance(parsed, dict):
                return normalize_room(parsed)
        return Room(id=stripped, name=stripped)
    if isinstance(value, dict):
        raw_id = value.get("id")
        raw_name = value.get("name")
        if raw_id in (None, "") and not raw_name:
            raise ValueError("Room mapping needs an id or a name")
        room_id = str(raw_id) if raw_id not in (None, "") else str(raw_name)
        return Room(
            id=room_id,
            name=str(raw_name) if raw_name else room_id,
            capacity=value.get("capacity"),
            description=value.get("description"),
        )
    raise ValueError(f"Unsupported room reference type: {type(value).__name__}")
