"""
Appointment reminder service.

This module sends automated reminders to patients before their appointments.
Reminders go through the notification dispatcher and are scheduled hourly
using APScheduler.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.cron import CronTrigger  # type: ignore
from sqlalchemy.orm import Session

from core.constants import REMINDER_SCHEDULER_MAX_INSTANCES, REMINDER_WINDOW_HOURS
from core.database import get_db_context
from models.appointment import Appointment
from models.clinic import Clinic
from services.notification_service import NotificationService
from shared_types.scheduling import NotificationKind
from utils.appointment_queries import starting_in_window
from utils.datetime_utils import CLINIC_TZ, clinic_now_naive

logger = logging.getLogger(__name__)


class ReminderService:
    """
    Service for managing appointment reminders.

    This service schedules and sends automated reminders to patients
    before their appointments.
    """

    def __init__(self):
        """
        Initialize the reminder service.

        Note: Database sessions are created fresh for each scheduler run
        to avoid stale session issues. Do not pass a session here.
        """
        # Cron fields are evaluated in clinic time
        self.scheduler = AsyncIOScheduler(timezone=CLINIC_TZ)
        self._is_started = False

    async def start_scheduler(self) -> None:
        """
        Start the background scheduler for sending reminders.

        This should be called during application startup.
        """
        if self._is_started:
            logger.warning("Reminder scheduler is already started")
            return

        # Schedule reminder checks to run every hour
        self.scheduler.add_job(  # type: ignore
            self._run_pending_reminders,
            CronTrigger(hour="*"),  # Run every hour
            id="send_reminders",
            name="Send appointment reminders",
            max_instances=REMINDER_SCHEDULER_MAX_INSTANCES,  # Prevent overlapping runs
            replace_existing=True
        )

        self.scheduler.start()
        self._is_started = True
        logger.info("Appointment reminder scheduler started")

    async def stop_scheduler(self) -> None:
        """
        Stop the background scheduler.

        This should be called during application shutdown.
        """
        if self._is_started:
            self.scheduler.shutdown(wait=True)
            self._is_started = False
            logger.info("Appointment reminder scheduler stopped")

    async def _run_pending_reminders(self) -> None:
        """Scheduler entry point. Uses a fresh database session for each run."""
        try:
            with get_db_context() as db:
                ReminderService.send_pending_reminders(db)
        except Exception as e:
            logger.exception(f"Error sending pending reminders: {e}")

    @staticmethod
    def get_appointments_needing_reminders(
        db: Session,
        clinic_id: int,
        reminder_hours_before: int,
        now: Optional[datetime] = None
    ) -> List[Appointment]:
        """
        Get appointments that need reminders sent.

        An appointment is due when it is active, has not been reminded yet and
        starts within [now + reminder_hours_before, + REMINDER_WINDOW_HOURS).

        Args:
            db: Database session
            clinic_id: ID of the clinic to check appointments for
            reminder_hours_before: How long before the start reminders go out
            now: Current clinic-local time (defaults to the clock)

        Returns:
            List of appointments that need reminders
        """
        now = now or clinic_now_naive()
        window_start = now + timedelta(hours=reminder_hours_before)
        return (
            starting_in_window(db, clinic_id, window_start, REMINDER_WINDOW_HOURS)
            .filter(Appointment.reminder_sent == False)
            .order_by(Appointment.start_time.asc())
            .all()
        )

    @staticmethod
    def send_pending_reminders(db: Session, now: Optional[datetime] = None) -> int:
        """
        Send reminders for every clinic and flag the reminded appointments.

        Delivery failures are logged by the dispatcher; the appointment is
        still flagged so it is not retried every hour.

        Returns:
            Number of reminders handed to the mailer
        """
        logger.info("Checking for appointments needing reminders...")
        total_found = 0
        total_sent = 0

        for clinic in db.query(Clinic).all():
            hours_before = clinic.get_validated_settings().notification_settings.reminder_hours_before
            appointments = ReminderService.get_appointments_needing_reminders(db, clinic.id, hours_before, now)
            if not appointments:
                continue

            logger.info(f"Found {len(appointments)} appointment(s) for clinic {clinic.id} needing reminders")
            for appointment in appointments:
                if NotificationService.dispatch(db, NotificationKind.APPOINTMENT_REMINDER, appointment):
                    total_sent += 1
                appointment.reminder_sent = True
            total_found += len(appointments)

        db.commit()

        if total_found == 0:
            logger.info("No appointments found that need reminders")
        else:
            logger.info(f"Successfully sent {total_sent} of {total_found} appointment reminder(s)")
        return total_sent


# Global reminder service instance
_reminder_service: Optional[ReminderService] = None


def get_reminder_service() -> ReminderService:
    """
    Get the global reminder service instance.

    Returns:
        The global reminder service instance
    """
    global _reminder_service
    if _reminder_service is None:
        _reminder_service = ReminderService()
    return _reminder_service


async def start_reminder_scheduler() -> None:
    """
    Start the global reminder scheduler.

    This should be called during application startup.
    """
    service = get_reminder_service()
    await service.start_scheduler()


async def stop_reminder_scheduler() -> None:
    """
    Stop the global reminder scheduler.

    This should be called during application shutdown.
    """
    global _reminder_service
    if _reminder_service:
        await _reminder_service.stop_scheduler()
