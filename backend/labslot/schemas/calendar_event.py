from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field, field_validator

from labslot.schemas.timeslot import TimeSlot


class EventState(str, Enum):
    pending = "PENDING"
    validated = "VALIDATED"
    cancelled = "CANCELLED"
    moved = "MOVED"
    in_progress = "IN_PROGRESS"


class ValidationState(str, Enum):
    no_pending = "noPending"
    owner_pending = "ownerPending"
    operator_pending = "operatorPending"


class ActorRole(str, Enum):
    owner = "owner"
    validator = "validator"


class TransitionAction(str, Enum):
    validate = "validate"
    cancel = "cancel"
    move = "move"
    mark_in_progress = "markInProgress"
    propose_slots = "proposeSlots"
    approve_proposal = "approveProposal"
    reject_proposal = "rejectProposal"
    approve_slot = "approveSlot"
    reject_slot = "rejectSlot"


class Actor(BaseModel):
    user_id: str = Field(alias="userId", min_length=1, max_length=100)
    role: ActorRole

    model_config = {"populate_by_name": True}

    @property
    def is_validator(self) -> bool:
        return self.role == ActorRole.validator


class StateChange(BaseModel):
    from_state: EventState = Field(alias="from")
    to_state: EventState = Field(alias="to")
    timestamp: datetime
    user_id: str = Field(alias="userId")
    reason: str | None = None

    model_config = {"populate_by_name": True}


class MaterialRef(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    quantity: float = Field(default=1, ge=0)
    unit: str | None = Field(default=None, max_length=20)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class CalendarEvent(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=300)
    discipline: str = Field(default="chimie", min_length=1, max_length=50)
    owner_id: str = Field(alias="ownerId", min_length=1, max_length=100)
    state: EventState = EventState.pending
    proposed_slots: list[TimeSlot] = Field(default_factory=list, alias="proposedSlots")
    accepted_slots: list[TimeSlot] = Field(default_factory=list, alias="acceptedSlots")
    proposed_by: str | None = Field(default=None, alias="proposedBy")
    last_state_change: StateChange | None = Field(default=None, alias="lastStateChange")
    state_change_reason: str | None = Field(default=None, alias="stateChangeReason")
    materials: list[MaterialRef] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "from_attributes": True}

    @property
    def active_proposed_slots(self) -> list[TimeSlot]:
        return [slot for slot in self.proposed_slots if slot.is_active]

    @property
    def active_accepted_slots(self) -> list[TimeSlot]:
        return [slot for slot in self.accepted_slots if slot.is_active]

    @computed_field(alias="validationState")
    @property
    def validation_state(self) -> ValidationState:
        from labslot.services.slot_diff import slot_sets_differ

        if not slot_sets_differ(self.active_proposed_slots, self.active_accepted_slots):
            return ValidationState.no_pending
        if self.proposed_by is not None and self.proposed_by != self.owner_id:
            return ValidationState.operator_pending
        return ValidationState.owner_pending


class CalendarEventCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=300)
    discipline: str = Field(default="chimie", min_length=1, max_length=50)
    slots: list[TimeSlot] = Field(default_factory=list, max_length=200)
    materials: list[MaterialRef] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)


class TransitionRequest(BaseModel):
    action: TransitionAction
    reason: str | None = Field(default=None, max_length=2000)
    proposed_slots: list[TimeSlot] | None = Field(default=None, alias="proposedSlots", max_length=200)
    slot_id: str | None = Field(default=None, alias="slotId", min_length=1, max_length=100)

    model_config = {"populate_by_name": True}


class TransitionOut(BaseModel):
    event: CalendarEvent
    observable_change: bool = Field(alias="observableChange")
    outcome: str
    deleted_slot_ids: list[str] = Field(default_factory=list, alias="deletedSlotIds")

    model_config = {"populate_by_name": True}


class SignatureOut(BaseModel):
    event_id: str = Field(alias="eventId")
    signature: str

    model_config = {"populate_by_name": True}
