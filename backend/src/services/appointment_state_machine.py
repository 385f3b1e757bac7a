"""
Appointment lifecycle state machine.

The lifecycle is an explicit transition table. `transition()` is a pure
function: it computes the destination state and the side effects the event
calls for, and returns them as intents. AppointmentService executes the
intents (event log rows, notifications, package cascades, financial lines),
so this module never touches the database, the mailer or the queue.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from core.constants import (
    ERROR_ASSISTED_CANNOT_CHANGE,
    ERROR_CANNOT_CANCEL,
    ERROR_INVALID_TRANSITION,
)
from core.exceptions import CannotCancel, InvalidTransition, StateGuardViolation
from shared_types.scheduling import AppointmentEvent, AppointmentState, IN_PROGRESS_STATES


class EffectKind(str, Enum):
    """Side effects requested by a transition."""
    RECORD_EVENT_LOG = "record_event_log"
    HIDE_PATIENT_FROM_QUEUE = "hide_patient_from_queue"
    FINALIZE_VISIT = "finalize_visit"
    CREATE_FINANCIAL_RECORD_LINE = "create_financial_record_line"
    NOTIFY_REFERENCER_DOCTOR = "notify_referencer_doctor"
    BROADCAST_NEW_PATIENT = "broadcast_new_patient"
    PROPAGATE_BILLED_TO_PACKAGE = "propagate_billed_to_package"


@dataclass(frozen=True)
class SideEffect:
    kind: EffectKind
    state: Optional[AppointmentState] = None


@dataclass(frozen=True)
class TransitionContext:
    """Facts about the appointment and clinic that decide conditional side effects."""
    pre_registration_enabled: bool = False
    has_referencer_doctor: bool = False
    has_patient_package: bool = False


@dataclass(frozen=True)
class TransitionResult:
    event: AppointmentEvent
    previous_state: AppointmentState
    new_state: AppointmentState
    effects: Tuple[SideEffect, ...] = field(default_factory=tuple)

    def has_effect(self, kind: EffectKind) -> bool:
        return any(effect.kind == kind for effect in self.effects)


@dataclass(frozen=True)
class TransitionRule:
    destination: AppointmentState
    # None means the event can fire from any state
    sources: Optional[FrozenSet[AppointmentState]] = None


TRANSITIONS: Dict[AppointmentEvent, TransitionRule] = {
    AppointmentEvent.START: TransitionRule(AppointmentState.BEING_ATTENDED),
    AppointmentEvent.FINALIZE: TransitionRule(
        AppointmentState.WAITING_FOR_RESULTS,
        frozenset({AppointmentState.BEING_ATTENDED}),
    ),
    AppointmentEvent.PRINT: TransitionRule(AppointmentState.PATIENT_BEING_VALIDATED),
    AppointmentEvent.COMPLETE: TransitionRule(
        AppointmentState.COMPLETED,
        frozenset({AppointmentState.WAITING_FOR_RESULTS}),
    ),
    AppointmentEvent.CONFIRM: TransitionRule(AppointmentState.CONFIRMED),
    AppointmentEvent.VALIDATE_PATIENT: TransitionRule(AppointmentState.ARRIVED),
    AppointmentEvent.VALIDATE_PATIENT_FAILED: TransitionRule(AppointmentState.FAILED_VALIDATION),
    AppointmentEvent.BILL: TransitionRule(AppointmentState.BILLED),
    AppointmentEvent.RESET_TO_CREATED: TransitionRule(AppointmentState.JUST_CREATED),
}


def can_fire(state: AppointmentState, event: AppointmentEvent) -> bool:
    rule = TRANSITIONS[event]
    return rule.sources is None or state in rule.sources


def _effects_for(event: AppointmentEvent, context: TransitionContext) -> Tuple[SideEffect, ...]:
    effects = []
    if event == AppointmentEvent.START:
        effects.append(SideEffect(EffectKind.HIDE_PATIENT_FROM_QUEUE))
    elif event == AppointmentEvent.FINALIZE:
        effects.append(SideEffect(EffectKind.FINALIZE_VISIT))
    elif event == AppointmentEvent.PRINT and context.pre_registration_enabled:
        effects.append(SideEffect(EffectKind.CREATE_FINANCIAL_RECORD_LINE))
    elif event == AppointmentEvent.COMPLETE and context.has_referencer_doctor:
        effects.append(SideEffect(EffectKind.NOTIFY_REFERENCER_DOCTOR))
    elif event == AppointmentEvent.VALIDATE_PATIENT:
        effects.append(SideEffect(EffectKind.BROADCAST_NEW_PATIENT))
    elif event == AppointmentEvent.BILL and context.has_patient_package:
        effects.append(SideEffect(EffectKind.PROPAGATE_BILLED_TO_PACKAGE, AppointmentState.BILLED))
    return tuple(effects)


def transition(
    state: AppointmentState,
    event: AppointmentEvent,
    context: Optional[TransitionContext] = None
) -> TransitionResult:
    """
    Compute the outcome of firing an event.

    Args:
        state: Current lifecycle state
        event: Event to fire
        context: Facts used to decide conditional side effects

    Returns:
        TransitionResult with the destination state and side effect intents.
        The last intent is always the event log entry for the new state.

    Raises:
        InvalidTransition: If the event is not allowed from the current state
    """
    context = context or TransitionContext()
    state = AppointmentState(state)
    event = AppointmentEvent(event)

    if not can_fire(state, event):
        raise InvalidTransition(
            event.value,
            state.value,
            ERROR_INVALID_TRANSITION.format(event=event.value, state=state.value),
        )

    destination = TRANSITIONS[event].destination
    effects = _effects_for(event, context) + (SideEffect(EffectKind.RECORD_EVENT_LOG, destination),)
    return TransitionResult(event=event, previous_state=state, new_state=destination, effects=effects)


def event_for_assisted_change(assisted: bool) -> AppointmentEvent:
    """Switching assistance on confirms the appointment; switching it off resets it."""
    return AppointmentEvent.CONFIRM if assisted else AppointmentEvent.RESET_TO_CREATED


def check_assisted_change(state: AppointmentState, assisted: bool) -> None:
    """
    Raises:
        StateGuardViolation: If assistance is switched on after the appointment left just_created
    """
    state = AppointmentState(state)
    if assisted and state != AppointmentState.JUST_CREATED:
        raise StateGuardViolation("assisted", ERROR_ASSISTED_CANNOT_CHANGE, state=state.value)


def check_can_cancel(state: AppointmentState, state_log_enabled: bool) -> None:
    """
    Raises:
        CannotCancel: If the appointment is in progress and state logging is enabled
    """
    state = AppointmentState(state)
    if state_log_enabled and state in IN_PROGRESS_STATES:
        raise CannotCancel(ERROR_CANNOT_CANCEL.format(state=state.value), state.value)
