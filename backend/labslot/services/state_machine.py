from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import uuid

from labslot.core.exceptions import (
    NO_OP,
    NoOpChange,
    ResourceNotFoundError,
    StateTransitionError,
    ValidationError,
)
from labslot.schemas.calendar_event import (
    Actor,
    ActorRole,
    CalendarEvent,
    EventState,
    MaterialRef,
    StateChange,
    TransitionAction,
    ValidationState,
)
from labslot.schemas.timeslot import AuditAction, AuditEntry, TimeSlot
from labslot.services.slot_diff import (
    has_observable_change,
    reconcile_slots,
    slot_changed,
    slot_sets_differ,
    soft_delete_slots,
)

logger = logging.getLogger(__name__)

VALIDATOR_TARGETS: dict[TransitionAction, EventState] = {
    TransitionAction.validate: EventState.validated,
    TransitionAction.cancel: EventState.cancelled,
    TransitionAction.move: EventState.moved,
    TransitionAction.mark_in_progress: EventState.in_progress,
}

REVIEW_ACTIONS = frozenset(
    {
        TransitionAction.reject_proposal,
        TransitionAction.approve_slot,
        TransitionAction.reject_slot,
    }
)
SLOT_REVIEW_ACTIONS = frozenset({TransitionAction.approve_slot, TransitionAction.reject_slot})


@dataclass(frozen=True)
class TransitionPolicy:
    validator_moves_require_review: bool = False


@dataclass(frozen=True)
class TransitionResult:
    event: CalendarEvent
    state_changed: bool = False
    slots_changed: bool = False
    observable_change: bool = False
    deleted_slot_ids: list[str] = field(default_factory=list)

    @property
    def no_op(self) -> NoOpChange | None:
        return None if self.observable_change else NO_OP

    @property
    def outcome(self) -> str:
        return "applied" if self.observable_change else "noop"


@dataclass
class _SlotPlan:
    proposed: list[TimeSlot]
    changed: bool = False
    deleted_ids: list[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_slots(slots: Sequence[TimeSlot]) -> None:
    for index, slot in enumerate(slots):
        label = slot.id or f"#{index}"
        if slot.start_date is None or slot.end_date is None:
            raise ValidationError(
                f"Slot {label} is missing its start or end date",
                details={"slot": label},
            )
        try:
            ordered = slot.start_date < slot.end_date
        except TypeError as exc:
            raise ValidationError(
                f"Slot {label} mixes timezone-aware and naive dates",
                details={"slot": label},
            ) from exc
        if not ordered:
            raise ValidationError(
                f"Slot {label} must end after it starts",
                details={
                    "slot": label,
                    "start_date": slot.start_date.isoformat(),
                    "end_date": slot.end_date.isoformat(),
                },
            )


def _coerce_action(action: TransitionAction | str) -> TransitionAction:
    try:
        return TransitionAction(action)
    except ValueError as exc:
        raise StateTransitionError(f"Unknown transition action {action!r}", status_code=400) from exc


def _authorize(event: CalendarEvent, action: TransitionAction, actor: Actor) -> None:
    if actor.role == ActorRole.owner and actor.user_id != event.owner_id:
        raise StateTransitionError(
            "Only the event owner may act in the owner role",
            status_code=403,
            details={"event_id": event.id, "user_id": actor.user_id},
        )
    if action in VALIDATOR_TARGETS and not actor.is_validator:
        raise StateTransitionError(
            f"Action {action.value} requires the validator role",
            status_code=403,
            details={"event_id": event.id, "action": action.value},
        )

    pending = event.validation_state
    if action == TransitionAction.approve_proposal:
        if actor.role != ActorRole.owner:
            raise StateTransitionError("Only the owner can approve a validator proposal", status_code=403)
        if pending != ValidationState.operator_pending:
            raise StateTransitionError(
                "No validator proposal is waiting for approval",
                details={"event_id": event.id, "validation_state": pending.value},
            )
    if action in REVIEW_ACTIONS:
        expected = (
            ValidationState.owner_pending if actor.is_validator else ValidationState.operator_pending
        )
        if pending != expected:
            raise StateTransitionError(
                "No proposal is waiting for this actor's review",
                details={"event_id": event.id, "validation_state": pending.value},
            )


def _plan_proposal(
    event: CalendarEvent,
    proposed_slots: Sequence[TimeSlot],
    actor_id: str,
    now: datetime,
) -> _SlotPlan:
    active = event.active_proposed_slots
    active_ids = {slot.id for slot in active}
    requested_ids = {slot.id for slot in proposed_slots if slot.id is not None}
    # A soft-deleted slot proposed again under its own id is revived, not duplicated.
    revived = [
        slot
        for slot in event.proposed_slots
        if not slot.is_active and slot.id in requested_ids and slot.id not in active_ids
    ]
    revived_ids = {slot.id for slot in revived}
    history = [slot for slot in event.proposed_slots if not slot.is_active and slot.id not in revived_ids]
    reconciled = reconcile_slots(
        proposed_slots,
        active + revived,
        actor_id,
        now=now,
        reserved_ids=[slot.id for slot in history if slot.id is not None],
    )
    if not reconciled.changed:
        return _SlotPlan(proposed=[slot.model_copy(deep=True) for slot in event.proposed_slots])

    deleted = set(reconciled.deleted_ids)
    dropped = [slot for slot in active if slot.id in deleted]
    removed = soft_delete_slots(dropped, reconciled.deleted_ids, actor_id, now=now)
    return _SlotPlan(
        proposed=list(reconciled.slots) + history + removed,
        changed=True,
        deleted_ids=list(reconciled.deleted_ids),
    )


def _restore_slot(
    accepted: TimeSlot,
    current: TimeSlot | None,
    previous: TimeSlot | None,
    actor_id: str,
    now: datetime,
) -> TimeSlot:
    """Bring a proposed slot back to its accepted value, auditing only a real change."""
    if current is not None and not slot_changed(current, accepted):
        return current.model_copy(deep=True)
    base = current or previous
    if base is None:
        history = [entry.model_copy() for entry in accepted.modified_by]
        action = AuditAction.created
    else:
        history = [entry.model_copy() for entry in base.modified_by]
        action = AuditAction.modified
    history.append(AuditEntry(user_id=actor_id, timestamp=now, action=action))
    return accepted.model_copy(update={"modified_by": history}, deep=True)


def _plan_rejection(event: CalendarEvent, actor_id: str, now: datetime) -> _SlotPlan:
    accepted = event.active_accepted_slots
    active_by_id = {slot.id: slot for slot in event.active_proposed_slots}
    deleted_by_id = {slot.id: slot for slot in event.proposed_slots if not slot.is_active}
    accepted_ids = {slot.id for slot in accepted}

    restored = [
        _restore_slot(slot, active_by_id.get(slot.id), deleted_by_id.get(slot.id), actor_id, now)
        for slot in accepted
    ]
    dropped_ids = [slot_id for slot_id in active_by_id if slot_id not in accepted_ids]
    removed = soft_delete_slots(
        [active_by_id[slot_id] for slot_id in dropped_ids], dropped_ids, actor_id, now=now
    )
    history = [
        slot.model_copy(deep=True)
        for slot in event.proposed_slots
        if not slot.is_active and slot.id not in accepted_ids
    ]
    return _SlotPlan(proposed=restored + history + removed, changed=True, deleted_ids=dropped_ids)


def _replace_by_id(slots: Sequence[TimeSlot], replacement: TimeSlot) -> list[TimeSlot]:
    out = [slot.model_copy(deep=True) for slot in slots]
    for index, slot in enumerate(out):
        if slot.id == replacement.id:
            out[index] = replacement
            return out
    out.append(replacement)
    return out


def _plan_slot_review(
    event: CalendarEvent,
    action: TransitionAction,
    slot_id: str,
    actor_id: str,
    now: datetime,
) -> tuple[_SlotPlan, list[TimeSlot]]:
    """Settle one slot of an outstanding proposal.

    Approving copies the proposed slot into the accepted set (or drops it from
    the accepted set when the proposal removed it). Rejecting restores the
    accepted value in the proposal, or soft-deletes a slot the proposal added.
    """
    accepted_by_id = {slot.id: slot for slot in event.active_accepted_slots}
    active_by_id = {slot.id: slot for slot in event.active_proposed_slots}
    if slot_id not in accepted_by_id and slot_id not in active_by_id:
        raise ResourceNotFoundError("Slot", slot_id)

    current = active_by_id.get(slot_id)
    accepted = event.active_accepted_slots
    if action == TransitionAction.approve_slot:
        if current is None:
            accepted = [slot.model_copy(deep=True) for slot in accepted if slot.id != slot_id]
        else:
            accepted = _replace_by_id(accepted, current.model_copy(deep=True))
        proposed = [slot.model_copy(deep=True) for slot in event.proposed_slots]
        return _SlotPlan(proposed=proposed), accepted

    kept = accepted_by_id.get(slot_id)
    if kept is None:
        proposed = soft_delete_slots(event.proposed_slots, [slot_id], actor_id, now=now)
        return _SlotPlan(proposed=proposed, changed=True, deleted_ids=[slot_id]), list(accepted)

    previous = next(
        (slot for slot in event.proposed_slots if slot.id == slot_id and not slot.is_active), None
    )
    restored = _restore_slot(kept, current, previous, actor_id, now)
    return _SlotPlan(proposed=_replace_by_id(event.proposed_slots, restored), changed=True), list(accepted)


def apply_transition(
    event: CalendarEvent,
    action: TransitionAction | str,
    actor: Actor,
    reason: str | None = None,
    proposed_slots: Sequence[TimeSlot] | None = None,
    *,
    slot_id: str | None = None,
    policy: TransitionPolicy | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """Apply one lifecycle action to ``event`` and return the resulting copy.

    The input event is never modified. Authorization and slot validation happen
    before anything is computed, so a rejected call leaves no partial state.
    Moving to the state the event is already in does not rewrite
    ``last_state_change``.

    ``approveSlot`` and ``rejectSlot`` settle the single slot named by
    ``slot_id``; the event returns to VALIDATED once nothing is left pending.
    """
    action = _coerce_action(action)
    policy = policy or TransitionPolicy()
    timestamp = now or _utcnow()

    _authorize(event, action, actor)

    if action == TransitionAction.propose_slots and proposed_slots is None:
        raise ValidationError("proposeSlots requires a list of proposed slots")
    if action in REVIEW_ACTIONS | {TransitionAction.approve_proposal} and proposed_slots:
        raise ValidationError(f"{action.value} does not accept proposed slots")
    if action in SLOT_REVIEW_ACTIONS and not slot_id:
        raise ValidationError(f"{action.value} requires a slot id")
    if proposed_slots is not None:
        validate_slots(proposed_slots)

    reviewed_accepted: list[TimeSlot] | None = None
    if action in SLOT_REVIEW_ACTIONS:
        plan, reviewed_accepted = _plan_slot_review(event, action, slot_id, actor.user_id, timestamp)
    elif action == TransitionAction.reject_proposal:
        plan = _plan_rejection(event, actor.user_id, timestamp)
    elif proposed_slots is not None:
        plan = _plan_proposal(event, proposed_slots, actor.user_id, timestamp)
    else:
        plan = _SlotPlan(proposed=[slot.model_copy(deep=True) for slot in event.proposed_slots])

    new_active = [slot for slot in plan.proposed if slot.is_active]
    accepted = [slot.model_copy(deep=True) for slot in event.accepted_slots]
    proposed_by = event.proposed_by
    target = event.state

    def accept_proposal() -> None:
        nonlocal accepted, proposed_by
        if slot_sets_differ(new_active, event.active_accepted_slots):
            accepted = [slot.model_copy(deep=True) for slot in new_active]
        proposed_by = None

    if action == TransitionAction.propose_slots and actor.role == ActorRole.owner:
        if plan.changed:
            target = EventState.pending
            proposed_by = actor.user_id
    elif action in (TransitionAction.propose_slots, TransitionAction.move) or (
        plan.changed and action in (TransitionAction.cancel, TransitionAction.mark_in_progress)
    ):
        if action == TransitionAction.move or plan.changed:
            target = VALIDATOR_TARGETS.get(action, EventState.moved)
        if plan.changed:
            if policy.validator_moves_require_review:
                proposed_by = actor.user_id
            else:
                accept_proposal()
    elif action in (TransitionAction.validate, TransitionAction.approve_proposal):
        target = EventState.validated
        accept_proposal()
    elif action in SLOT_REVIEW_ACTIONS:
        accepted = reviewed_accepted
        if slot_sets_differ(new_active, accepted):
            target = EventState.pending
        else:
            target = EventState.validated
            proposed_by = None
    elif action == TransitionAction.reject_proposal:
        target = EventState.validated
        proposed_by = None
    elif action in VALIDATOR_TARGETS:
        target = VALIDATOR_TARGETS[action]

    updates: dict = {
        "proposed_slots": plan.proposed,
        "accepted_slots": accepted,
        "proposed_by": proposed_by,
    }
    state_changed = target != event.state
    if state_changed:
        updates["state"] = target
        updates["last_state_change"] = StateChange(
            from_state=event.state,
            to_state=target,
            timestamp=timestamp,
            user_id=actor.user_id,
            reason=reason,
        )
        updates["state_change_reason"] = reason

    updated = event.model_copy(update=updates, deep=True)
    observable = has_observable_change(event, updated) or (
        updated.validation_state != event.validation_state
    )
    if not observable and not state_changed:
        logger.debug("event %s: %s by %s changed nothing", event.id, action.value, actor.user_id)
        return TransitionResult(event=event.model_copy(deep=True))

    if state_changed:
        logger.info(
            "event %s: %s -> %s by %s (%s)",
            event.id,
            event.state.value,
            target.value,
            actor.user_id,
            action.value,
        )
    return TransitionResult(
        event=updated,
        state_changed=state_changed,
        slots_changed=plan.changed,
        observable_change=True,
        deleted_slot_ids=plan.deleted_ids,
    )


def create_event(
    *,
    title: str,
    actor: Actor,
    slots: Sequence[TimeSlot],
    discipline: str = "chimie",
    owner_id: str | None = None,
    event_id: str | None = None,
    materials: Sequence[MaterialRef] = (),
    documents: Sequence[str] = (),
    now: datetime | None = None,
) -> CalendarEvent:
    """Build a new event. Validators create already-validated bookings, owners create requests."""
    validate_slots(slots)
    timestamp = now or _utcnow()
    reconciled = reconcile_slots(slots, [], actor.user_id, now=timestamp)
    state = EventState.validated if actor.is_validator else EventState.pending
    return CalendarEvent(
        id=event_id or str(uuid.uuid4()),
        title=title,
        discipline=discipline,
        owner_id=owner_id or actor.user_id,
        state=state,
        proposed_slots=reconciled.slots,
        accepted_slots=[slot.model_copy(deep=True) for slot in reconciled.slots],
        materials=list(materials),
        documents=list(documents),
    )
