"""
Recurrence engine for periodic appointments.

A recurring appointment is the root of a series. Its occurrences are planned
at fixed calendar offsets from the root's start (N months, N weeks, two
weeks, N years) and materialized as child appointments whose `parent_id`
points at the root. Planning is pure; the DB-backed engine validates,
materializes, removes and shifts series members.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Protocol, Set, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from core.constants import BIWEEKLY_INTERVAL_WEEKS, ERROR_OCCURRENCE_CONFLICT
from models import Appointment
from models.clinic import SchedulingSettings
from shared_types.scheduling import Frequency, SchedulingCandidate
from utils.appointment_queries import overlapping_for_doctor, series_members
from utils.datetime_utils import clinic_now_naive, format_datetime, occupied_slot

logger = logging.getLogger(__name__)


def frequency_offset(frequency: Frequency, frequency_number: int, index: int) -> relativedelta:
    """
    Offset of the index-th occurrence from the series start.

    Offsets are always computed from the root, so month ends don't drift
    (Jan 31 -> Feb 28 -> Mar 31).
    """
    frequency = Frequency(frequency)
    step = max(frequency_number or 1, 1)
    if frequency == Frequency.MONTHLY:
        return relativedelta(months=step * index)
    if frequency == Frequency.WEEKLY:
        return relativedelta(weeks=step * index)
    if frequency == Frequency.BIWEEKLY:
        return relativedelta(weeks=BIWEEKLY_INTERVAL_WEEKS * index)
    return relativedelta(years=step * index)


def plan_occurrences(
    start_time: datetime,
    end_time: datetime,
    frequency: Frequency,
    frequency_number: int = 1,
    horizon_days: int = 365,
    max_occurrences: int = 52
) -> List[Tuple[datetime, datetime]]:
    """
    Plan the occurrences following a series root.

    Pure function - no database queries.

    Args:
        start_time: Root start
        end_time: Root end
        frequency: Recurrence frequency
        frequency_number: Multiplier for monthly, weekly and yearly offsets
        horizon_days: Later occurrences must start within this many days of the root.
            The first occurrence is always planned, so N-yearly series are never empty.
        max_occurrences: Upper bound on the number of planned occurrences

    Returns:
        (start, end) pairs in chronological order, the root excluded
    """
    duration = end_time - start_time
    horizon_end = start_time + timedelta(days=horizon_days)
    occurrences: List[Tuple[datetime, datetime]] = []

    index = 1
    while len(occurrences) < max_occurrences:
        occurrence_start = start_time + frequency_offset(frequency, frequency_number, index)
        if index > 1 and occurrence_start > horizon_end:
            break
        occurrences.append((occurrence_start, occurrence_start + duration))
        index += 1

    return occurrences


class RecurrenceEngine(Protocol):
    """Operations the appointment service needs from a recurrence backend."""

    def validate(self, candidate: SchedulingCandidate) -> List[str]:
        ...

    def materialize(self, root: Appointment) -> int:
        ...

    def remove(self, appointment: Appointment) -> int:
        ...

    def update_forward(self, appointment: Appointment, old_start: datetime, old_end: datetime) -> List[str]:
        ...


class AppointmentsRepeaterService:
    """
    Database-backed recurrence engine for one clinic.

    The caller owns the transaction; this service only adds and mutates rows
    in the given session.
    """

    def __init__(self, db: Session, clinic_id: int, settings: SchedulingSettings):
        self.db = db
        self.clinic_id = clinic_id
        self.settings = settings

    def plan(self, start_time: datetime, end_time: datetime, frequency: Frequency,
             frequency_number: int) -> List[Tuple[datetime, datetime]]:
        return plan_occurrences(
            start_time,
            end_time,
            frequency,
            frequency_number,
            horizon_days=self.settings.recurrence_horizon_days,
            max_occurrences=self.settings.max_recurrence_occurrences,
        )

    def _conflict_messages(
        self,
        doctor_id: int,
        slots: List[Tuple[datetime, datetime]],
        ignored_ids: Set[int]
    ) -> List[str]:
        if self.settings.concurrent_appointments_for_doctor_allowed:
            return []

        messages = []
        for start_time, end_time in slots:
            conflicts = [
                appointment
                for appointment in overlapping_for_doctor(self.db, self.clinic_id, doctor_id, start_time, end_time)
                if appointment.id not in ignored_ids
            ]
            if conflicts:
                messages.append(ERROR_OCCURRENCE_CONFLICT.format(when=format_datetime(start_time)))
        return messages

    def validate(self, candidate: SchedulingCandidate) -> List[str]:
        """
        Conflict messages for the occurrences a candidate would generate.

        Returns:
            One message per conflicting occurrence, in chronological order
        """
        if candidate.frequency is None or candidate.doctor_id is None \
                or candidate.start_time is None or candidate.end_time is None:
            return []

        start_time, end_time = occupied_slot(candidate.start_time, candidate.end_time, candidate.is_all_day)
        slots = self.plan(start_time, end_time, candidate.frequency, candidate.frequency_number)
        ignored = {candidate.appointment_id} if candidate.appointment_id is not None else set()
        return self._conflict_messages(candidate.doctor_id, slots, ignored)

    def materialize(self, root: Appointment) -> int:
        """
        Create the child appointments of a series root.

        Children inherit patient, doctor, type, referencer, package, all-day
        flag and description. The root is flagged as recursive and records
        the slot of its last occurrence.

        Returns:
            Number of created appointments
        """
        frequency = root.frequency_enum
        if frequency is None:
            return 0

        slots = self.plan(root.start_time, root.end_time, frequency, root.frequency_number)
        for start_time, end_time in slots:
            self.db.add(Appointment(
                clinic_id=root.clinic_id,
                patient_id=root.patient_id,
                doctor_id=root.doctor_id,
                appointment_type_id=root.appointment_type_id,
                referencer_doctor_id=root.referencer_doctor_id,
                patient_package_id=root.patient_package_id,
                parent_id=root.id,
                start_time=start_time,
                end_time=end_time,
                is_all_day=root.is_all_day,
                description=root.description,
            ))

        last_start, last_end = slots[-1] if slots else (root.start_time, root.end_time)
        root.recursive = True
        root.is_initial_recurrency = True
        root.last_recurrent_start_date = last_start
        root.last_recurrent_end_date = last_end
        self.db.flush()

        logger.info(
            f"Materialized {len(slots)} {frequency.value} occurrences for appointment {root.id} "
            f"in clinic {self.clinic_id}"
        )
        return len(slots)

    def remove(self, appointment: Appointment) -> int:
        """
        Cancel the series members that start after the given appointment.

        The appointment itself is kept. When it is the root, its recurrence
        bookkeeping is cleared.

        Returns:
            Number of canceled appointments
        """
        root_id = appointment.series_root_id
        members = series_members(
            self.db,
            self.clinic_id,
            root_id,
            after=appointment.start_time,
            exclude_appointment_id=appointment.id,
        )
        now = clinic_now_naive()
        for member in members:
            member.canceled = True
            member.canceled_at = now

        if appointment.id == root_id:
            appointment.recursive = False
            appointment.is_initial_recurrency = False
            appointment.last_recurrent_start_date = None
            appointment.last_recurrent_end_date = None
        self.db.flush()

        logger.info(f"Removed {len(members)} occurrences of series {root_id} in clinic {self.clinic_id}")
        return len(members)

    def update_forward(self, appointment: Appointment, old_start: datetime, old_end: datetime) -> List[str]:
        """
        Shift every later member of the series by the same deltas as the edited appointment.

        All or nothing: if any shifted member would conflict, no member is
        changed and the conflict messages are returned.

        Args:
            appointment: Edited series member, already carrying its new times
            old_start: Start before the edit
            old_end: End before the edit

        Returns:
            Conflict messages, empty when the series was shifted
        """
        start_delta = appointment.start_time - old_start
        end_delta = appointment.end_time - old_end
        root_id = appointment.series_root_id

        members = series_members(
            self.db,
            self.clinic_id,
            root_id,
            after=old_start,
            exclude_appointment_id=appointment.id,
        )
        if not members:
            return []

        shifted = [(member.start_time + start_delta, member.end_time + end_delta) for member in members]
        # Members move together, so their current slots never block each other
        ignored = {member.id for member in members} | {appointment.id}
        messages = self._conflict_messages(appointment.doctor_id, shifted, ignored)
        if messages:
            logger.warning(
                f"Forward update of series {root_id} rejected: {len(messages)} conflicting occurrences"
            )
            return messages

        for member, (start_time, end_time) in zip(members, shifted):
            if member.start_time != start_time:
                member.reminder_sent = False
            member.start_time = start_time
            member.end_time = end_time
            member.doctor_id = appointment.doctor_id

        root = self.db.get(Appointment, root_id)
        if root is not None and root.last_recurrent_start_date is not None:
            last_start, last_end = shifted[-1]
            root.last_recurrent_start_date = last_start
            root.last_recurrent_end_date = last_end
        self.db.flush()

        logger.info(f"Shifted {len(members)} occurrences of series {root_id} by {start_delta}")
        return []


def get_recurrence_engine(db: Session, clinic_id: int, settings: SchedulingSettings) -> Optional[RecurrenceEngine]:
    """
    Recurrence engine for the clinic.

    Returns None when periodic appointments are handled by notifications
    instead of materialized series.
    """
    if settings.notifications_for_periodic_appointments_enabled:
        return None
    return AppointmentsRepeaterService(db, clinic_id, settings)
