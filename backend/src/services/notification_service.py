"""
Notification dispatcher for appointment lifecycle events.

Notifications are fire-and-forget: delivery failures are logged and never
propagate to the booking or transition that triggered them. Some kinds are
also stored as in-app Notification rows in the caller's transaction.

Outgoing mail goes through a Mailer and waiting-room updates through a
QueueBroadcaster. Both default to logging implementations and can be
replaced at startup (or in tests) with set_mailer()/set_queue_broadcaster().
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from core.config import MAIL_FROM
from models import Appointment, Doctor, Notification
from shared_types.scheduling import NotificationKind

logger = logging.getLogger(__name__)


# Kinds also stored as in-app notifications
RECORDED_KINDS = frozenset({
    NotificationKind.APPOINTMENT_CANCELED,
    NotificationKind.APPOINTMENT_COMPLETED,
    NotificationKind.VISIT_RECORD_DONE,
})

SUBJECTS = {
    NotificationKind.APPOINTMENT_CREATED: "Your appointment has been scheduled",
    NotificationKind.APPOINTMENT_UPDATED: "Your appointment has changed",
    NotificationKind.APPOINTMENT_CANCELED: "Your appointment has been canceled",
    NotificationKind.APPOINTMENT_COMPLETED: "A referred appointment was completed",
    NotificationKind.APPOINTMENT_REMINDER: "Appointment reminder",
}


@dataclass(frozen=True)
class MailMessage:
    sender: str
    to: str
    subject: str
    body: str
    kind: NotificationKind
    appointment_id: int


class Mailer(Protocol):
    def send(self, message: MailMessage) -> None:
        ...


class LoggingMailer:
    """Mailer that only logs outgoing messages."""

    def send(self, message: MailMessage) -> None:
        logger.info(
            f"Mail '{message.subject}' ({message.kind.value}) to {message.to} "
            f"for appointment {message.appointment_id}"
        )


class QueueBroadcaster(Protocol):
    """Real-time waiting-room updates."""

    def hide_patient(self, clinic_id: int, appointment_id: int) -> None:
        ...

    def new_patient_in_queue(self, clinic_id: int, appointment_id: int) -> None:
        ...

    def next_patient(self, clinic_id: int, appointment_id: int) -> None:
        ...


class LoggingQueueBroadcaster:
    """Broadcaster that only logs queue updates."""

    def hide_patient(self, clinic_id: int, appointment_id: int) -> None:
        logger.info(f"Queue[{clinic_id}]: hide patient of appointment {appointment_id}")

    def new_patient_in_queue(self, clinic_id: int, appointment_id: int) -> None:
        logger.info(f"Queue[{clinic_id}]: new patient from appointment {appointment_id}")

    def next_patient(self, clinic_id: int, appointment_id: int) -> None:
        logger.info(f"Queue[{clinic_id}]: next patient after appointment {appointment_id}")


_mailer: Mailer = LoggingMailer()
_queue_broadcaster: QueueBroadcaster = LoggingQueueBroadcaster()


def get_mailer() -> Mailer:
    return _mailer


def set_mailer(mailer: Mailer) -> None:
    global _mailer
    _mailer = mailer


def get_queue_broadcaster() -> QueueBroadcaster:
    return _queue_broadcaster


def set_queue_broadcaster(broadcaster: QueueBroadcaster) -> None:
    global _queue_broadcaster
    _queue_broadcaster = broadcaster


class NotificationService:
    """Service for appointment notifications to patients and referencing doctors."""

    @staticmethod
    def dispatch(
        db: Session,
        kind: NotificationKind,
        appointment: Appointment,
        recipient_doctor: Optional[Doctor] = None
    ) -> bool:
        """
        Record and deliver a notification about an appointment.

        Args:
            db: Database session (the Notification row joins the caller's transaction)
            kind: Notification kind
            appointment: Subject appointment
            recipient_doctor: Doctor to notify instead of the patient

        Returns:
            True if a mail was handed to the mailer, False otherwise
        """
        kind = NotificationKind(kind)
        try:
            if kind in RECORDED_KINDS:
                db.add(Notification(
                    clinic_id=appointment.clinic_id,
                    notification_type=kind.value,
                    appointment_id=appointment.id,
                    recipient_doctor_id=recipient_doctor.id if recipient_doctor else None,
                ))

            subject = SUBJECTS.get(kind)
            if subject is None:
                # In-app only
                return False

            recipient_email = recipient_doctor.email if recipient_doctor else (
                appointment.patient.email if appointment.patient else None
            )
            if not recipient_email:
                logger.info(f"No email address for {kind.value} of appointment {appointment.id}, skipping mail")
                return False

            get_mailer().send(MailMessage(
                sender=MAIL_FROM,
                to=recipient_email,
                subject=subject,
                body=NotificationService._build_body(kind, appointment),
                kind=kind,
                appointment_id=appointment.id,
            ))
            logger.info(f"Sent {kind.value} notification for appointment {appointment.id}")
            return True

        except Exception as e:
            logger.exception(f"Failed to send {kind.value} notification for appointment {appointment.id}: {e}")
            return False

    @staticmethod
    def _build_body(kind: NotificationKind, appointment: Appointment) -> str:
        doctor_name = appointment.doctor.full_name if appointment.doctor else ""
        when = appointment.format_for_display()
        if kind == NotificationKind.APPOINTMENT_COMPLETED:
            return f"{appointment.title} completed {appointment.type_name} with {doctor_name} on {when}."
        return f"{appointment.title}, {appointment.type_name} with {doctor_name} on {when}."

    @staticmethod
    def broadcast_hide_patient(appointment: Appointment) -> None:
        try:
            get_queue_broadcaster().hide_patient(appointment.clinic_id, appointment.id)
        except Exception as e:
            logger.exception(f"Failed to broadcast hide patient for appointment {appointment.id}: {e}")

    @staticmethod
    def broadcast_new_patient(appointment: Appointment) -> None:
        try:
            get_queue_broadcaster().new_patient_in_queue(appointment.clinic_id, appointment.id)
        except Exception as e:
            logger.exception(f"Failed to broadcast new patient for appointment {appointment.id}: {e}")

    @staticmethod
    def broadcast_next_patient(appointment: Appointment) -> None:
        try:
            get_queue_broadcaster().next_patient(appointment.clinic_id, appointment.id)
        except Exception as e:
            logger.exception(f"Failed to broadcast next patient for appointment {appointment.id}: {e}")
