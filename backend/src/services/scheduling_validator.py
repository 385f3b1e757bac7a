"""
Conflict validator for appointment bookings.

Collects every field error of a proposed booking instead of stopping at the
first one: required fields, time ordering, past start, disabled weekday,
doctor double-booking, contradictory patient validation flags and recurring
series conflicts. Only the series check stops early, surfacing the first
conflicting occurrence.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import (
    ERROR_ALREADY_BOOKED,
    ERROR_DISABLED_WEEKDAY,
    ERROR_END_BEFORE_START,
    ERROR_PATIENT_VALIDATION_CONFLICT,
    ERROR_REQUIRED,
    ERROR_START_IN_PAST,
)
from core.exceptions import FieldError
from models import Appointment
from models.clinic import SchedulingSettings
from services.recurrence_service import RecurrenceEngine
from shared_types.scheduling import SchedulingCandidate
from utils.appointment_queries import overlapping_for_doctor
from utils.datetime_utils import clinic_now_naive, occupied_slot
from utils.soft_delete_queries import get_doctor

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("patient_id", "doctor_id", "appointment_type_id", "start_time", "end_time")


class SchedulingValidator:
    """
    Service class for booking validation.

    All methods are static and take the database session first, like the
    other services.
    """

    @staticmethod
    def lock_doctor_calendar(db: Session, clinic_id: int, doctor_id: Optional[int]) -> None:
        """
        Lock the doctor row for the rest of the transaction.

        Bookings on the same doctor wait for each other here, so the conflict
        check and the following insert/update can't interleave with another
        request. Databases without row locks (SQLite) ignore FOR UPDATE.
        """
        if doctor_id is None:
            return
        get_doctor(db, clinic_id, doctor_id, include_deleted=True, for_update=True)

    @staticmethod
    def find_doctor_conflicts(db: Session, candidate: SchedulingCandidate) -> List[Appointment]:
        """
        Active appointments of the candidate's doctor overlapping its time slot.

        All-day candidates are checked against their whole day. The
        candidate's own row is never counted against itself.
        """
        start_time, end_time = occupied_slot(candidate.start_time, candidate.end_time, candidate.is_all_day)
        if candidate.doctor_id is None or start_time is None or end_time is None:
            return []
        return overlapping_for_doctor(
            db,
            candidate.clinic_id,
            candidate.doctor_id,
            start_time,
            end_time,
            exclude_appointment_id=candidate.appointment_id,
        ).all()

    @staticmethod
    def validate_required(candidate: SchedulingCandidate) -> List[FieldError]:
        return [
            FieldError(name, ERROR_REQUIRED, "blank")
            for name in REQUIRED_FIELDS
            if getattr(candidate, name) is None
        ]

    @staticmethod
    def validate_time_rules(
        candidate: SchedulingCandidate,
        settings: SchedulingSettings,
        now: Optional[datetime] = None
    ) -> List[FieldError]:
        """
        Time ordering, past start and disabled weekday checks.

        Pure function - no database queries.
        """
        errors: List[FieldError] = []
        start_time, end_time = candidate.start_time, candidate.end_time

        if start_time is not None and end_time is not None and end_time <= start_time:
            errors.append(FieldError("end_time", ERROR_END_BEFORE_START, "invalid"))

        if start_time is not None:
            now = now or clinic_now_naive()
            if not settings.appointments_can_start_in_the_past and start_time < now:
                errors.append(FieldError("start_time", ERROR_START_IN_PAST, "in_the_past"))

            if start_time.weekday() in settings.disabled_weekdays():
                errors.append(FieldError("start_time", ERROR_DISABLED_WEEKDAY, "disabled_weekday"))

        return errors

    @staticmethod
    def validate_patient_flags(candidate: SchedulingCandidate) -> List[FieldError]:
        if candidate.patient_validated and candidate.patient_validate_failed:
            return [FieldError("patient_validate_failed", ERROR_PATIENT_VALIDATION_CONFLICT, "invalid")]
        return []

    @staticmethod
    def validate_doctor_availability(
        db: Session,
        candidate: SchedulingCandidate,
        settings: SchedulingSettings
    ) -> List[FieldError]:
        if settings.concurrent_appointments_for_doctor_allowed:
            return []
        if candidate.end_time is not None and candidate.start_time is not None \
                and candidate.end_time <= candidate.start_time:
            return []

        conflicts = SchedulingValidator.find_doctor_conflicts(db, candidate)
        if not conflicts:
            return []

        logger.warning(
            f"Doctor {candidate.doctor_id} double-booking rejected in clinic {candidate.clinic_id}: "
            f"{candidate.start_time}-{candidate.end_time} overlaps appointment {conflicts[0].id}"
        )
        return [FieldError("start_time", ERROR_ALREADY_BOOKED, "scheduling_conflict")]

    @staticmethod
    def validate(
        db: Session,
        candidate: SchedulingCandidate,
        settings: SchedulingSettings,
        check_slot: bool = True,
        recurrence_engine: Optional[RecurrenceEngine] = None,
        now: Optional[datetime] = None
    ) -> List[FieldError]:
        """
        Collect every validation error of a proposed booking.

        Args:
            db: Database session
            candidate: Values the appointment would have once saved
            settings: Clinic scheduling settings
            check_slot: Whether the time slot is new or moved. Unchanged slots
                of existing appointments skip past/weekday/double-booking checks.
            recurrence_engine: When given and the candidate has a frequency,
                the whole series is checked for conflicts
            now: Reference time for the past check (clinic-local, naive)

        Returns:
            List of field errors, empty when the booking is valid
        """
        errors = SchedulingValidator.validate_required(candidate)
        required_ok = not errors

        if check_slot:
            errors.extend(SchedulingValidator.validate_time_rules(candidate, settings, now))
            if candidate.doctor_id is not None:
                errors.extend(SchedulingValidator.validate_doctor_availability(db, candidate, settings))
        elif candidate.start_time is not None and candidate.end_time is not None \
                and candidate.end_time <= candidate.start_time:
            errors.append(FieldError("end_time", ERROR_END_BEFORE_START, "invalid"))

        errors.extend(SchedulingValidator.validate_patient_flags(candidate))

        if (
            recurrence_engine is not None
            and candidate.frequency is not None
            and required_ok
            and not settings.notifications_for_periodic_appointments_enabled
        ):
            messages = recurrence_engine.validate(candidate)
            if messages:
                errors.append(FieldError("start_time", messages[0], "recurrence_conflict"))

        return errors
