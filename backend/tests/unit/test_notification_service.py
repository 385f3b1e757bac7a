"""
Unit tests for the notification dispatcher.

Delivery is fire-and-forget, so failures must never escape dispatch().
"""

from datetime import datetime
from unittest.mock import Mock

from models import Appointment, AppointmentType, Doctor, Notification, Patient
from services.notification_service import NotificationService
from shared_types.scheduling import NotificationKind


def make_appointment(email="jane@example.com") -> Appointment:
    return Appointment(
        id=42,
        clinic_id=1,
        start_time=datetime(2030, 3, 5, 9, 30),
        end_time=datetime(2030, 3, 5, 10, 30),
        patient=Patient(full_name="Jane Doe", email=email),
        doctor=Doctor(full_name="Dr. House"),
        appointment_type=AppointmentType(name="Consultation"),
    )


class TestDispatch:

    def test_mail_is_sent_to_patient(self, mailer):
        db = Mock()
        sent = NotificationService.dispatch(db, NotificationKind.APPOINTMENT_CREATED, make_appointment())

        assert sent is True
        assert len(mailer.messages) == 1
        message = mailer.messages[0]
        assert message.to == "jane@example.com"
        assert message.appointment_id == 42
        assert "Dr. House" in message.body
        assert "05/03/2030 09:30 AM" in message.body
        db.add.assert_not_called()

    def test_recorded_kinds_add_in_app_notification(self, mailer):
        db = Mock()
        NotificationService.dispatch(db, NotificationKind.APPOINTMENT_CANCELED, make_appointment())

        db.add.assert_called_once()
        notification = db.add.call_args[0][0]
        assert isinstance(notification, Notification)
        assert notification.notification_type == "appointment_canceled"
        assert notification.appointment_id == 42

    def test_completed_goes_to_referencer_doctor(self, mailer):
        db = Mock()
        referencer = Doctor(id=9, full_name="Dr. Wilson", email="wilson@example.com")
        NotificationService.dispatch(
            db, NotificationKind.APPOINTMENT_COMPLETED, make_appointment(), recipient_doctor=referencer
        )

        assert mailer.messages[0].to == "wilson@example.com"
        assert db.add.call_args[0][0].recipient_doctor_id == 9

    def test_visit_record_done_is_in_app_only(self, mailer):
        db = Mock()
        sent = NotificationService.dispatch(db, NotificationKind.VISIT_RECORD_DONE, make_appointment())

        assert sent is False
        assert mailer.messages == []
        db.add.assert_called_once()

    def test_missing_email_skips_mail(self, mailer):
        sent = NotificationService.dispatch(Mock(), NotificationKind.APPOINTMENT_UPDATED, make_appointment(email=None))
        assert sent is False
        assert mailer.messages == []

    def test_mailer_failure_is_swallowed(self):
        from services.notification_service import get_mailer, set_mailer

        failing = Mock()
        failing.send.side_effect = RuntimeError("smtp down")
        previous = get_mailer()
        set_mailer(failing)
        try:
            sent = NotificationService.dispatch(Mock(), NotificationKind.APPOINTMENT_CREATED, make_appointment())
        finally:
            set_mailer(previous)

        assert sent is False
        failing.send.assert_called_once()


class TestQueueBroadcasts:

    def test_broadcasts_reach_the_queue(self, queue):
        appointment = make_appointment()
        NotificationService.broadcast_hide_patient(appointment)
        NotificationService.broadcast_new_patient(appointment)
        NotificationService.broadcast_next_patient(appointment)

        assert queue.calls == [
            ("hide_patient", 42),
            ("new_patient_in_queue", 42),
            ("next_patient", 42),
        ]

    def test_broadcast_failure_is_swallowed(self):
        from services.notification_service import get_queue_broadcaster, set_queue_broadcaster

        failing = Mock()
        failing.hide_patient.side_effect = RuntimeError("socket closed")
        previous = get_queue_broadcaster()
        set_queue_broadcaster(failing)
        try:
            NotificationService.broadcast_hide_patient(make_appointment())
        finally:
            set_queue_broadcaster(previous)

        failing.hide_patient.assert_called_once_with(1, 42)
