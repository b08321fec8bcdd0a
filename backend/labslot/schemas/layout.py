from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from labslot.services.occupancy import LayoutMode


class LayoutItemIn(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    start: datetime
    end: datetime
    resource_ids: list[str] = Field(default_factory=list, alias="resourceIds")
    event_id: str | None = Field(default=None, alias="eventId")

    model_config = {"populate_by_name": True}

    @field_validator("resource_ids", mode="before")
    @classmethod
    def coerce_resource_ids(cls, value):
        if value is None:
            return []
        return list(dict.fromkeys(str(item) for item in value))


class LayoutRequest(BaseModel):
    items: list[LayoutItemIn] = Field(default_factory=list, max_length=5000)
    mode: LayoutMode = LayoutMode.by_booking
    resource_filter: list[str] | None = Field(default=None, alias="resourceFilter")

    model_config = {"populate_by_name": True}


class PlacementOut(BaseModel):
    item_id: str = Field(alias="itemId")
    col: int = Field(ge=0)
    cols: int = Field(ge=1)
    day: date
    start: datetime
    end: datetime
    lane_resource_id: str | None = Field(default=None, alias="laneResourceId")
    lane_label: str | None = Field(default=None, alias="laneLabel")
    event_id: str | None = Field(default=None, alias="eventId")

    model_config = {"populate_by_name": True, "from_attributes": True}
