"""
Integration tests for status propagation across patient package appointments.
"""

from datetime import timedelta

from models import Appointment
from services import AppointmentService, PatientPackageService
from services.patient_package_service import CascadeApplied, CascadeNoop
from shared_types.scheduling import AppointmentEvent, AppointmentState


def book_package(book, monday, patient_package, count=3):
    return [
        book(monday.replace(hour=10) + timedelta(days=day), patient_package_id=patient_package.id)
        for day in range(count)
    ]


def states(db_session, appointments):
    for appointment in appointments:
        db_session.refresh(appointment)
    return [appointment.state for appointment in appointments]


class TestBilledCascade:

    def test_billing_one_bills_the_package(self, db_session, clinic, book, monday, patient_package):
        first, second, third = book_package(book, monday, patient_package)

        AppointmentService.fire_event(db_session, clinic.id, first.id, AppointmentEvent.BILL)

        assert states(db_session, [first, second, third]) == ["billed", "billed", "billed"]
        # Siblings are bulk-updated, not transitioned
        assert [log.state for log in first.event_logs] == ["billed"]
        assert second.event_logs == []

    def test_deleted_package_does_not_cascade(self, db_session, clinic, book, monday, patient_package):
        first, second, third = book_package(book, monday, patient_package)
        assert PatientPackageService.soft_delete_package(db_session, clinic.id, patient_package.id) is True
        db_session.commit()

        AppointmentService.fire_event(db_session, clinic.id, first.id, AppointmentEvent.BILL)

        assert states(db_session, [first, second, third]) == ["billed", "just_created", "just_created"]

    def test_cascade_result_reports_noop_for_deleted_package(self, db_session, clinic, book, monday, patient_package):
        first, _, _ = book_package(book, monday, patient_package)
        PatientPackageService.soft_delete_package(db_session, clinic.id, patient_package.id)

        result = PatientPackageService.propagate_billed(db_session, first)
        assert isinstance(result, CascadeNoop)
        assert result.patient_package_id == patient_package.id

    def test_cascade_result_counts_siblings(self, db_session, book, monday, patient_package):
        first, _, _ = book_package(book, monday, patient_package)

        result = PatientPackageService.propagate_billed(db_session, first)
        assert result == CascadeApplied(patient_package.id, 2)

    def test_appointment_without_package_is_noop(self, db_session, book, monday):
        appointment = book(monday.replace(hour=10))
        assert isinstance(PatientPackageService.propagate_billed(db_session, appointment), CascadeNoop)

    def test_canceled_siblings_are_untouched(self, db_session, clinic, book, monday, patient_package):
        first, second, third = book_package(book, monday, patient_package)
        # Package cascade would cancel every sibling, so flag the row directly
        third.canceled = True
        db_session.commit()

        AppointmentService.fire_event(db_session, clinic.id, first.id, AppointmentEvent.BILL)
        assert states(db_session, [first, second, third]) == ["billed", "billed", "just_created"]

    def test_soft_delete_twice(self, db_session, clinic, patient_package):
        assert PatientPackageService.soft_delete_package(db_session, clinic.id, patient_package.id) is True
        assert PatientPackageService.soft_delete_package(db_session, clinic.id, patient_package.id) is False


class TestAssistedCascade:

    def test_confirming_one_confirms_the_package(self, db_session, clinic, book, monday, patient_package):
        first, second, third = book_package(book, monday, patient_package)

        AppointmentService.update_appointment(db_session, clinic.id, first.id, assisted=True)

        assert states(db_session, [first, second, third]) == ["confirmed"] * 3
        assert all(a.assisted for a in (first, second, third))

    def test_unconfirming_resets_the_package(self, db_session, clinic, book, monday, patient_package):
        first, second, third = book_package(book, monday, patient_package)
        AppointmentService.update_appointment(db_session, clinic.id, first.id, assisted=True)

        AppointmentService.update_appointment(db_session, clinic.id, second.id, assisted=False)

        assert states(db_session, [first, second, third]) == ["just_created"] * 3
        assert not any(a.assisted for a in (first, second, third))

    def test_assisted_booking_confirms_the_package(self, db_session, book, monday, patient_package):
        first, second = book_package(book, monday, patient_package, count=2)
        third = book(monday.replace(hour=15), patient_package_id=patient_package.id, assisted=True)

        assert states(db_session, [first, second, third]) == ["confirmed"] * 3


class TestCanceledCascade:

    def test_canceling_one_cancels_the_package(self, db_session, clinic, book, monday, patient_package):
        first, second, third = book_package(book, monday, patient_package)

        AppointmentService.cancel_appointment(db_session, clinic.id, second.id)

        for appointment in (first, second, third):
            db_session.refresh(appointment)
        assert all(a.canceled for a in (first, second, third))
        assert all(a.canceled_at is not None for a in (first, third))

    def test_cancel_through_update_cascades(self, db_session, clinic, book, monday, patient_package):
        first, second, _ = book_package(book, monday, patient_package)

        AppointmentService.update_appointment(db_session, clinic.id, first.id, canceled=True)

        assert db_session.query(Appointment).filter(Appointment.canceled == False).count() == 0

    def test_other_packages_are_untouched(self, db_session, clinic, patient, book, monday, patient_package):
        from models import PatientPackage

        other_package = PatientPackage(clinic_id=clinic.id, patient_id=patient.id, name="Massage x5")
        db_session.add(other_package)
        db_session.commit()

        first, _, _ = book_package(book, monday, patient_package)
        outsider = book(monday.replace(hour=16), patient_package_id=other_package.id)

        AppointmentService.cancel_appointment(db_session, clinic.id, first.id)

        db_session.refresh(outsider)
        assert outsider.canceled is False
        assert outsider.lifecycle_state == AppointmentState.JUST_CREATED
