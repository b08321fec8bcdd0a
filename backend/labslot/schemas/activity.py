from datetime import datetime

from pydantic import BaseModel, Field

from labslot.schemas.calendar_event import ActorRole


class ActivityLogOut(BaseModel):
    id: str
    actor_id: str | None = Field(default=None, alias="actorId")
    actor_role: ActorRole | None = Field(default=None, alias="actorRole")
    action: str
    entity_type: str = Field(alias="entityType")
    entity_id: str | None = Field(default=None, alias="entityId")
    details: dict = Field(default_factory=dict)
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True, "from_attributes": True}
