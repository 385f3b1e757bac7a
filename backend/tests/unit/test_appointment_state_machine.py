"""
Unit tests for the appointment lifecycle state machine.

The state machine is pure, so no database is needed here.
"""

import pytest

from core.exceptions import CannotCancel, InvalidTransition, StateGuardViolation
from services.appointment_state_machine import (
    EffectKind,
    TRANSITIONS,
    TransitionContext,
    can_fire,
    check_assisted_change,
    check_can_cancel,
    event_for_assisted_change,
    transition,
)
from shared_types.scheduling import AppointmentEvent, AppointmentState, IN_PROGRESS_STATES


class TestTransitions:
    """Destination states and source restrictions."""

    @pytest.mark.parametrize("event,destination", [
        (AppointmentEvent.START, AppointmentState.BEING_ATTENDED),
        (AppointmentEvent.PRINT, AppointmentState.PATIENT_BEING_VALIDATED),
        (AppointmentEvent.CONFIRM, AppointmentState.CONFIRMED),
        (AppointmentEvent.VALIDATE_PATIENT, AppointmentState.ARRIVED),
        (AppointmentEvent.VALIDATE_PATIENT_FAILED, AppointmentState.FAILED_VALIDATION),
        (AppointmentEvent.BILL, AppointmentState.BILLED),
        (AppointmentEvent.RESET_TO_CREATED, AppointmentState.JUST_CREATED),
    ])
    def test_unrestricted_events_fire_from_any_state(self, event, destination):
        for state in AppointmentState:
            result = transition(state, event)
            assert result.previous_state == state
            assert result.new_state == destination

    def test_finalize_only_from_being_attended(self):
        result = transition(AppointmentState.BEING_ATTENDED, AppointmentEvent.FINALIZE)
        assert result.new_state == AppointmentState.WAITING_FOR_RESULTS

        with pytest.raises(InvalidTransition) as exc_info:
            transition(AppointmentState.CONFIRMED, AppointmentEvent.FINALIZE)
        assert exc_info.value.event == "finalize"
        assert exc_info.value.state == "confirmed"

    def test_complete_only_from_waiting_for_results(self):
        result = transition(AppointmentState.WAITING_FOR_RESULTS, AppointmentEvent.COMPLETE)
        assert result.new_state == AppointmentState.COMPLETED

        for state in AppointmentState:
            if state != AppointmentState.WAITING_FOR_RESULTS:
                assert not can_fire(state, AppointmentEvent.COMPLETE)

    def test_invalid_transition_is_a_state_guard_violation(self):
        with pytest.raises(StateGuardViolation):
            transition(AppointmentState.JUST_CREATED, AppointmentEvent.COMPLETE)

    def test_accepts_raw_string_values(self):
        result = transition("being_attended", "finalize")
        assert result.event == AppointmentEvent.FINALIZE
        assert result.new_state == AppointmentState.WAITING_FOR_RESULTS

    def test_every_event_has_a_rule(self):
        assert set(TRANSITIONS) == set(AppointmentEvent)


class TestSideEffects:
    """Side effect intents returned by transition()."""

    def test_event_log_is_always_the_last_intent(self):
        for event in (AppointmentEvent.CONFIRM, AppointmentEvent.START, AppointmentEvent.BILL):
            result = transition(AppointmentState.JUST_CREATED, event)
            assert result.effects[-1].kind == EffectKind.RECORD_EVENT_LOG
            assert result.effects[-1].state == result.new_state

    def test_confirm_only_records_event_log(self):
        result = transition(AppointmentState.JUST_CREATED, AppointmentEvent.CONFIRM)
        assert [effect.kind for effect in result.effects] == [EffectKind.RECORD_EVENT_LOG]

    def test_start_hides_patient_from_queue(self):
        result = transition(AppointmentState.ARRIVED, AppointmentEvent.START)
        assert result.has_effect(EffectKind.HIDE_PATIENT_FROM_QUEUE)

    def test_finalize_finalizes_visit(self):
        result = transition(AppointmentState.BEING_ATTENDED, AppointmentEvent.FINALIZE)
        assert result.has_effect(EffectKind.FINALIZE_VISIT)

    def test_print_creates_financial_line_only_with_pre_registration(self):
        without = transition(AppointmentState.CONFIRMED, AppointmentEvent.PRINT)
        assert not without.has_effect(EffectKind.CREATE_FINANCIAL_RECORD_LINE)

        context = TransitionContext(pre_registration_enabled=True)
        with_pre_registration = transition(AppointmentState.CONFIRMED, AppointmentEvent.PRINT, context)
        assert with_pre_registration.has_effect(EffectKind.CREATE_FINANCIAL_RECORD_LINE)

    def test_complete_notifies_referencer_only_when_present(self):
        without = transition(AppointmentState.WAITING_FOR_RESULTS, AppointmentEvent.COMPLETE)
        assert not without.has_effect(EffectKind.NOTIFY_REFERENCER_DOCTOR)

        context = TransitionContext(has_referencer_doctor=True)
        result = transition(AppointmentState.WAITING_FOR_RESULTS, AppointmentEvent.COMPLETE, context)
        assert result.has_effect(EffectKind.NOTIFY_REFERENCER_DOCTOR)

    def test_validate_patient_broadcasts_new_patient(self):
        result = transition(AppointmentState.PATIENT_BEING_VALIDATED, AppointmentEvent.VALIDATE_PATIENT)
        assert result.has_effect(EffectKind.BROADCAST_NEW_PATIENT)

    def test_bill_propagates_to_package_only_when_present(self):
        without = transition(AppointmentState.COMPLETED, AppointmentEvent.BILL)
        assert not without.has_effect(EffectKind.PROPAGATE_BILLED_TO_PACKAGE)

        context = TransitionContext(has_patient_package=True)
        result = transition(AppointmentState.COMPLETED, AppointmentEvent.BILL, context)
        assert result.has_effect(EffectKind.PROPAGATE_BILLED_TO_PACKAGE)


class TestGuards:
    """Assisted flag and cancellation guards."""

    def test_assisted_change_maps_to_events(self):
        assert event_for_assisted_change(True) == AppointmentEvent.CONFIRM
        assert event_for_assisted_change(False) == AppointmentEvent.RESET_TO_CREATED

    def test_assisted_can_be_switched_on_while_just_created(self):
        check_assisted_change(AppointmentState.JUST_CREATED, True)

    def test_assisted_cannot_be_switched_on_after_progress(self):
        with pytest.raises(StateGuardViolation) as exc_info:
            check_assisted_change(AppointmentState.BEING_ATTENDED, True)
        assert exc_info.value.field == "assisted"
        assert exc_info.value.state == "being_attended"

    def test_switching_assisted_off_is_not_guarded(self):
        check_assisted_change(AppointmentState.COMPLETED, False)

    @pytest.mark.parametrize("state", sorted(IN_PROGRESS_STATES, key=lambda s: s.value))
    def test_in_progress_states_cannot_be_canceled_with_state_log(self, state):
        with pytest.raises(CannotCancel) as exc_info:
            check_can_cancel(state, state_log_enabled=True)
        assert exc_info.value.field == "canceled"

    @pytest.mark.parametrize("state", list(AppointmentState))
    def test_any_state_can_be_canceled_without_state_log(self, state):
        check_can_cancel(state, state_log_enabled=False)

    @pytest.mark.parametrize("state", [
        AppointmentState.JUST_CREATED,
        AppointmentState.CONFIRMED,
        AppointmentState.FAILED_VALIDATION,
        AppointmentState.BILLED,
    ])
    def test_idle_states_can_be_canceled_with_state_log(self, state):
        check_can_cancel(state, state_log_enabled=True)
