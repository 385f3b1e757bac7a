"""
Shared types for appointment scheduling.

This module contains the lifecycle enums and the candidate structure passed
between the conflict validator, the recurrence engine and the appointment
service.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional


class AppointmentState(str, Enum):
    """Lifecycle states of an appointment. Stored by value."""
    JUST_CREATED = "just_created"
    CONFIRMED = "confirmed"
    PATIENT_BEING_VALIDATED = "patient_being_validated"
    ARRIVED = "arrived"
    WAITING_IN_RECEPTION = "waiting_in_reception"
    BEING_ATTENDED = "being_attended"
    WAITING_FOR_RESULTS = "waiting_for_results"
    COMPLETED = "completed"
    FAILED_VALIDATION = "failed_validation"
    BILLED = "billed"


class AppointmentEvent(str, Enum):
    """Events that move an appointment between lifecycle states."""
    START = "start"
    FINALIZE = "finalize"
    PRINT = "print"
    COMPLETE = "complete"
    CONFIRM = "confirm"
    VALIDATE_PATIENT = "validate_patient"
    VALIDATE_PATIENT_FAILED = "validate_patient_failed"
    BILL = "bill"
    RESET_TO_CREATED = "reset_to_created"


class Frequency(str, Enum):
    """Recurrence frequency of a periodic appointment."""
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    YEARLY = "yearly"


class NotificationKind(str, Enum):
    """Messages sent to patients and doctors about an appointment."""
    APPOINTMENT_CREATED = "appointment_created"
    APPOINTMENT_UPDATED = "appointment_updated"
    APPOINTMENT_CANCELED = "appointment_canceled"
    APPOINTMENT_COMPLETED = "appointment_completed"
    VISIT_RECORD_DONE = "visit_record_done"
    APPOINTMENT_REMINDER = "appointment_reminder"


# Appointments in these states can't be canceled while state logging is on
IN_PROGRESS_STATES: FrozenSet[AppointmentState] = frozenset({
    AppointmentState.PATIENT_BEING_VALIDATED,
    AppointmentState.ARRIVED,
    AppointmentState.WAITING_IN_RECEPTION,
    AppointmentState.BEING_ATTENDED,
    AppointmentState.WAITING_FOR_RESULTS,
    AppointmentState.COMPLETED,
})


@dataclass(frozen=True)
class SchedulingCandidate:
    """
    Proposed booking checked by the conflict validator.

    Holds the values the appointment would have once saved. `appointment_id`
    is set when an existing appointment is being updated so that it never
    conflicts with its own persisted row. Times are the requested ones; an
    all-day candidate still blocks its whole day.
    """
    clinic_id: int
    doctor_id: Optional[int]
    patient_id: Optional[int]
    appointment_type_id: Optional[int]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    appointment_id: Optional[int] = None
    is_all_day: bool = False
    frequency: Optional[Frequency] = None
    frequency_number: int = 1
    patient_validated: bool = False
    patient_validate_failed: bool = False
