"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from models import Appointment, AppointmentEventLog


class AppointmentResponse(BaseModel):
    """Response model for an appointment."""
    id: int
    clinic_id: int
    patient_id: int
    patient_name: str
    doctor_id: int
    appointment_type_id: int
    appointment_type_name: str  # Resolved even when the type was soft deleted
    referencer_doctor_id: Optional[int] = None
    patient_package_id: Optional[int] = None
    parent_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    display_time: str
    duration_hours: float
    is_all_day: bool
    assisted: bool
    canceled: bool
    canceled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    confirmed: bool
    recursive: bool
    frequency: Optional[str] = None
    frequency_number: int
    last_recurrent_start_date: Optional[datetime] = None
    last_recurrent_end_date: Optional[datetime] = None
    state: str
    patient_validated: bool
    patient_validate_failed: bool
    reminder_sent: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            clinic_id=appointment.clinic_id,
            patient_id=appointment.patient_id,
            patient_name=appointment.title,
            doctor_id=appointment.doctor_id,
            appointment_type_id=appointment.appointment_type_id,
            appointment_type_name=appointment.type_name,
            referencer_doctor_id=appointment.referencer_doctor_id,
            patient_package_id=appointment.patient_package_id,
            parent_id=appointment.parent_id,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            display_time=appointment.format_for_display(),
            duration_hours=appointment.duration_hours,
            is_all_day=appointment.is_all_day,
            assisted=appointment.assisted,
            canceled=appointment.canceled,
            canceled_at=appointment.canceled_at,
            cancellation_reason=appointment.cancellation_reason,
            confirmed=appointment.confirmed,
            recursive=appointment.recursive,
            frequency=appointment.frequency,
            frequency_number=appointment.frequency_number,
            last_recurrent_start_date=appointment.last_recurrent_start_date,
            last_recurrent_end_date=appointment.last_recurrent_end_date,
            state=appointment.state,
            patient_validated=appointment.patient_validated,
            patient_validate_failed=appointment.patient_validate_failed,
            reminder_sent=appointment.reminder_sent,
            description=appointment.description,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments."""
    appointments: List[AppointmentResponse]


class AppointmentEventResponse(BaseModel):
    """Response model for a fired lifecycle event."""
    appointment: AppointmentResponse
    event: str
    previous_state: str
    new_state: str


class AppointmentEventLogResponse(BaseModel):
    """Response model for one audit entry."""
    id: int
    state: str
    created_at: datetime

    @classmethod
    def from_log(cls, log: AppointmentEventLog) -> "AppointmentEventLogResponse":
        return cls(id=log.id, state=log.state, created_at=log.created_at)


class AppointmentEventLogListResponse(BaseModel):
    """Response model for the audit trail of an appointment."""
    event_logs: List[AppointmentEventLogResponse]
