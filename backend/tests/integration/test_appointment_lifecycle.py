"""
Integration tests for lifecycle events, guards and their side effects.
"""

import pytest

from core.exceptions import AppointmentNotFound, CannotCancel, InvalidTransition, StateGuardViolation
from models import AppointmentFinancialRecordLine, FinancialRecordLine, Notification
from models.financial_record_line import BILLABLE_APPOINTMENT_TYPE, BILLABLE_PATIENT_PACKAGE
from services import AppointmentService
from shared_types.scheduling import AppointmentEvent, AppointmentState


def fire(db_session, appointment, *events):
    for event in events:
        appointment, result = AppointmentService.fire_event(db_session, appointment.clinic_id, appointment.id, event)
    return appointment


class TestEvents:

    def test_full_visit_records_every_state(self, db_session, book, monday, queue):
        appointment = book(monday.replace(hour=10))

        fire(
            db_session,
            appointment,
            AppointmentEvent.CONFIRM,
            AppointmentEvent.VALIDATE_PATIENT,
            AppointmentEvent.START,
            AppointmentEvent.FINALIZE,
            AppointmentEvent.COMPLETE,
        )

        logs = AppointmentService.get_event_logs(db_session, appointment.clinic_id, appointment.id)
        assert [log.state for log in logs] == [
            "confirmed", "arrived", "being_attended", "waiting_for_results", "completed",
        ]
        assert appointment.lifecycle_state == AppointmentState.COMPLETED
        assert queue.calls == [
            ("new_patient_in_queue", appointment.id),
            ("hide_patient", appointment.id),
            ("next_patient", appointment.id),
        ]

    def test_fire_event_returns_transition(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))
        _, result = AppointmentService.fire_event(db_session, clinic.id, appointment.id, AppointmentEvent.START)

        assert result.previous_state == AppointmentState.JUST_CREATED
        assert result.new_state == AppointmentState.BEING_ATTENDED

    def test_invalid_transition_changes_nothing(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))

        with pytest.raises(InvalidTransition):
            AppointmentService.fire_event(db_session, clinic.id, appointment.id, AppointmentEvent.COMPLETE)

        db_session.refresh(appointment)
        assert appointment.state == "just_created"
        assert appointment.event_logs == []

    def test_finalize_stores_visit_record_notification(self, db_session, book, monday):
        appointment = book(monday.replace(hour=10))
        fire(db_session, appointment, AppointmentEvent.START, AppointmentEvent.FINALIZE)

        notifications = db_session.query(Notification).all()
        assert [n.notification_type for n in notifications] == ["visit_record_done"]

    def test_complete_notifies_referencer(self, db_session, book, monday, referencer, mailer):
        appointment = book(monday.replace(hour=10), referencer_doctor_id=referencer.id)
        fire(db_session, appointment, AppointmentEvent.START, AppointmentEvent.FINALIZE, AppointmentEvent.COMPLETE)

        assert mailer.messages[-1].kind.value == "appointment_completed"
        assert mailer.messages[-1].to == "wilson@example.com"
        completed = db_session.query(Notification).filter(
            Notification.notification_type == "appointment_completed"
        ).one()
        assert completed.recipient_doctor_id == referencer.id

    def test_complete_without_referencer_sends_nothing(self, db_session, book, monday, mailer):
        appointment = book(monday.replace(hour=10))
        mailer.messages.clear()
        fire(db_session, appointment, AppointmentEvent.START, AppointmentEvent.FINALIZE, AppointmentEvent.COMPLETE)
        assert mailer.messages == []

    def test_canceled_appointment_cannot_fire(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))
        AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)

        with pytest.raises(AppointmentNotFound):
            AppointmentService.fire_event(db_session, clinic.id, appointment.id, AppointmentEvent.START)

    def test_other_clinic_cannot_see_appointment(self, db_session, book, monday):
        from models import Clinic

        other = Clinic(name="Other", settings={})
        db_session.add(other)
        db_session.commit()
        appointment = book(monday.replace(hour=10))

        with pytest.raises(AppointmentNotFound):
            AppointmentService.get_appointment(db_session, other.id, appointment.id)


class TestPrint:

    def test_print_without_pre_registration_creates_no_line(self, db_session, book, monday):
        appointment = book(monday.replace(hour=10))
        fire(db_session, appointment, AppointmentEvent.PRINT)

        assert appointment.lifecycle_state == AppointmentState.PATIENT_BEING_VALIDATED
        assert db_session.query(FinancialRecordLine).count() == 0

    def test_print_with_pre_registration_bills_appointment_type(
        self, db_session, book, monday, doctor, appointment_type, update_settings
    ):
        update_settings(pre_registration_enabled=True)
        first = book(monday.replace(hour=10))
        second = book(monday.replace(hour=12))

        fire(db_session, first, AppointmentEvent.PRINT)
        fire(db_session, second, AppointmentEvent.PRINT)
        fire(db_session, second, AppointmentEvent.PRINT)

        line = db_session.query(FinancialRecordLine).one()
        assert line.billable_type == BILLABLE_APPOINTMENT_TYPE
        assert line.billable_id == appointment_type.id
        assert line.doctor_id == doctor.id
        assert db_session.query(AppointmentFinancialRecordLine).count() == 2

    def test_print_with_package_bills_the_package(
        self, db_session, book, monday, patient_package, update_settings
    ):
        update_settings(pre_registration_enabled=True)
        appointment = book(monday.replace(hour=10), patient_package_id=patient_package.id)
        fire(db_session, appointment, AppointmentEvent.PRINT)

        line = db_session.query(FinancialRecordLine).one()
        assert line.billable_type == BILLABLE_PATIENT_PACKAGE
        assert line.billable_id == patient_package.id
        assert line.doctor_id is None


class TestGuards:

    def test_cancel_in_progress_with_state_log_is_rejected(self, db_session, clinic, book, monday, update_settings):
        update_settings(enable_appointment_state_log=True)
        appointment = book(monday.replace(hour=10))
        fire(db_session, appointment, AppointmentEvent.START)

        with pytest.raises(CannotCancel) as exc_info:
            AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)
        assert exc_info.value.state == "being_attended"

        db_session.refresh(appointment)
        assert appointment.canceled is False

    def test_cancel_in_progress_without_state_log(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))
        fire(db_session, appointment, AppointmentEvent.START)

        canceled = AppointmentService.cancel_appointment(
            db_session, clinic.id, appointment.id, cancellation_reason="Patient left"
        )
        assert canceled.canceled is True
        assert canceled.canceled_at is not None
        assert canceled.cancellation_reason == "Patient left"

    def test_cancel_through_update_is_guarded(self, db_session, clinic, book, monday, update_settings):
        update_settings(enable_appointment_state_log=True)
        appointment = book(monday.replace(hour=10))
        fire(db_session, appointment, AppointmentEvent.PRINT)

        with pytest.raises(CannotCancel):
            AppointmentService.update_appointment(db_session, clinic.id, appointment.id, canceled=True)

    def test_cancel_is_idempotent(self, db_session, clinic, book, monday, mailer):
        appointment = book(monday.replace(hour=10))
        AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)
        AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)

        assert mailer.kinds().count("appointment_canceled") == 1
        assert db_session.query(Notification).count() == 1

    def test_assisted_cannot_be_switched_on_after_progress(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))
        fire(db_session, appointment, AppointmentEvent.START)

        with pytest.raises(StateGuardViolation) as exc_info:
            AppointmentService.update_appointment(db_session, clinic.id, appointment.id, assisted=True)
        assert exc_info.value.field == "assisted"

    def test_assisted_switch_fires_confirm_and_reset(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))

        AppointmentService.update_appointment(db_session, clinic.id, appointment.id, assisted=True)
        assert appointment.lifecycle_state == AppointmentState.CONFIRMED

        AppointmentService.update_appointment(db_session, clinic.id, appointment.id, assisted=False)
        assert appointment.lifecycle_state == AppointmentState.JUST_CREATED

        logs = AppointmentService.get_event_logs(db_session, clinic.id, appointment.id)
        assert [log.state for log in logs] == ["confirmed", "just_created"]

    def test_patient_validation_flags_fire_events(self, db_session, clinic, book, monday, queue):
        appointment = book(monday.replace(hour=10))

        AppointmentService.update_appointment(db_session, clinic.id, appointment.id, patient_validated=True)
        assert appointment.lifecycle_state == AppointmentState.ARRIVED
        assert queue.calls == [("new_patient_in_queue", appointment.id)]

    def test_patient_validation_failure_fires_event(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))

        AppointmentService.update_appointment(db_session, clinic.id, appointment.id, patient_validate_failed=True)
        assert appointment.lifecycle_state == AppointmentState.FAILED_VALIDATION


class TestPatientConfirmation:

    def test_patient_confirms_new_appointment(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))

        confirmed = AppointmentService.confirm_by_patient(db_session, clinic.id, appointment.id)
        assert confirmed.confirmed is True
        assert confirmed.assisted is True
        assert confirmed.lifecycle_state == AppointmentState.CONFIRMED
        assert [log.state for log in confirmed.event_logs] == ["confirmed"]

    def test_confirmation_after_progress_is_rejected(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))
        fire(db_session, appointment, AppointmentEvent.START)

        with pytest.raises(StateGuardViolation):
            AppointmentService.confirm_by_patient(db_session, clinic.id, appointment.id)

    def test_canceled_appointment_cannot_be_confirmed(self, db_session, clinic, book, monday):
        appointment = book(monday.replace(hour=10))
        AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)

        with pytest.raises(StateGuardViolation):
            AppointmentService.confirm_by_patient(db_session, clinic.id, appointment.id)
