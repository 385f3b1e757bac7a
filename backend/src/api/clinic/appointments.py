# pyright: reportMissingTypeStubs=false
"""
Appointment Management API endpoints.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from api.clinic.shared import scheduling_error_to_http
from api.responses import (
    AppointmentEventLogListResponse,
    AppointmentEventLogResponse,
    AppointmentEventResponse,
    AppointmentListResponse,
    AppointmentResponse,
)
from core.constants import MAX_DESCRIPTION_LENGTH, UPCOMING_APPOINTMENTS_FOR_PATIENT_LIMIT
from core.database import get_db
from core.exceptions import SchedulingError
from services import AppointmentService
from shared_types.scheduling import AppointmentEvent, Frequency

logger = logging.getLogger(__name__)

router = APIRouter()


# ===== Request Models =====

class AppointmentCreateRequest(BaseModel):
    """Request model for booking an appointment."""
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    appointment_type_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    time: Optional[str] = Field(default=None, description="Compact start 'dd-mm-YYYY-H-MM'; overrides start/end")
    is_all_day: bool = False
    assisted: bool = False
    referencer_doctor_id: Optional[int] = None
    patient_package_id: Optional[int] = None
    frequency: Optional[Frequency] = None
    frequency_number: int = Field(default=1, ge=1)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    patient_validated: bool = False
    patient_validate_failed: bool = False

    @field_validator('description')
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class AppointmentUpdateRequest(BaseModel):
    """
    Request model for partial appointment updates.

    Only fields present in the request body change.
    """
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    appointment_type_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    time: Optional[str] = None
    is_all_day: Optional[bool] = None
    assisted: Optional[bool] = None
    canceled: Optional[bool] = None
    cancellation_reason: Optional[str] = None
    referencer_doctor_id: Optional[int] = None
    patient_package_id: Optional[int] = None
    frequency: Optional[Frequency] = None
    frequency_number: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    patient_validated: Optional[bool] = None
    patient_validate_failed: Optional[bool] = None
    save_from_now_on: bool = False

    @field_validator(
        'is_all_day', 'assisted', 'canceled', 'patient_validated', 'patient_validate_failed', 'frequency_number'
    )
    @classmethod
    def reject_null(cls, v):
        # Only called for values present in the body; these columns are not nullable
        if v is None:
            raise ValueError('can be omitted but not null')
        return v


# ===== Endpoints =====

@router.get("/appointments", summary="List appointments", response_model=AppointmentListResponse)
async def list_appointments(
    clinic_id: int,
    doctor_id: Optional[int] = Query(None),
    doctor_ids: Optional[List[int]] = Query(None, description="Several doctors side by side"),
    patient_id: Optional[int] = Query(None),
    start: Optional[datetime] = Query(None, description="Range start (clinic time if naive)"),
    end: Optional[datetime] = Query(None, description="Range end (clinic time if naive)"),
    today: bool = Query(False, description="Only the current clinic day; overrides start/end"),
    include_canceled: bool = Query(False),
    db: Session = Depends(get_db)
):
    """List the clinic's appointments, optionally filtered by doctors, patient and time range."""
    try:
        appointments = AppointmentService.list_appointments(
            db,
            clinic_id,
            doctor_id=doctor_id,
            patient_id=patient_id,
            start=start,
            end=end,
            include_canceled=include_canceled,
            doctor_ids=doctor_ids,
            today=today,
        )
        return AppointmentListResponse(
            appointments=[AppointmentResponse.from_appointment(a) for a in appointments]
        )
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.get(
    "/patients/{patient_id}/upcoming-appointments",
    summary="Upcoming appointments of a patient",
    response_model=AppointmentListResponse,
)
async def list_upcoming_appointments_for_patient(
    clinic_id: int,
    patient_id: int,
    limit: int = Query(UPCOMING_APPOINTMENTS_FOR_PATIENT_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db)
):
    try:
        appointments = AppointmentService.list_upcoming_for_patient(db, clinic_id, patient_id, limit)
        return AppointmentListResponse(
            appointments=[AppointmentResponse.from_appointment(a) for a in appointments]
        )
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.post(
    "/appointments",
    summary="Book an appointment",
    response_model=AppointmentResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def create_appointment(
    clinic_id: int,
    request: AppointmentCreateRequest,
    db: Session = Depends(get_db)
):
    """
    Book an appointment.

    Every validation problem is returned at once (422). Recurring bookings
    create the whole series or nothing.
    """
    try:
        appointment = AppointmentService.create_appointment(
            db,
            clinic_id,
            patient_id=request.patient_id,
            doctor_id=request.doctor_id,
            appointment_type_id=request.appointment_type_id,
            start_time=request.start_time,
            end_time=request.end_time,
            time_string=request.time,
            is_all_day=request.is_all_day,
            assisted=request.assisted,
            referencer_doctor_id=request.referencer_doctor_id,
            patient_package_id=request.patient_package_id,
            frequency=request.frequency.value if request.frequency else None,
            frequency_number=request.frequency_number,
            description=request.description,
            patient_validated=request.patient_validated,
            patient_validate_failed=request.patient_validate_failed,
        )
        return AppointmentResponse.from_appointment(appointment)
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.get("/appointments/{appointment_id}", summary="Get appointment", response_model=AppointmentResponse)
async def get_appointment(
    clinic_id: int,
    appointment_id: int,
    db: Session = Depends(get_db)
):
    try:
        return AppointmentResponse.from_appointment(
            AppointmentService.get_appointment(db, clinic_id, appointment_id)
        )
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.patch("/appointments/{appointment_id}", summary="Update appointment", response_model=AppointmentResponse)
async def update_appointment(
    clinic_id: int,
    appointment_id: int,
    request: AppointmentUpdateRequest,
    db: Session = Depends(get_db)
):
    """
    Update an appointment.

    With `save_from_now_on`, a time change on a recurring series member is
    applied to every later member too.
    """
    changes = request.model_dump(exclude_unset=True)
    save_from_now_on = changes.pop("save_from_now_on", False)
    if "time" in changes:
        changes["time_string"] = changes.pop("time")
    if changes.get("frequency") is not None:
        changes["frequency"] = Frequency(changes["frequency"]).value

    try:
        appointment = AppointmentService.update_appointment(
            db,
            clinic_id,
            appointment_id,
            save_from_now_on=save_from_now_on,
            **changes,
        )
        return AppointmentResponse.from_appointment(appointment)
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.delete("/appointments/{appointment_id}", summary="Cancel appointment", response_model=AppointmentResponse)
async def cancel_appointment(
    clinic_id: int,
    appointment_id: int,
    series: bool = Query(False, description="Also cancel the later members of the series"),
    cancellation_reason: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Cancel an appointment.

    Appointments are never physically deleted; they are flagged as canceled.
    """
    try:
        appointment = AppointmentService.cancel_appointment(
            db,
            clinic_id,
            appointment_id,
            cancellation_reason=cancellation_reason,
            series=series,
        )
        return AppointmentResponse.from_appointment(appointment)
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.post(
    "/appointments/{appointment_id}/events/{event}",
    summary="Fire a lifecycle event",
    response_model=AppointmentEventResponse,
)
async def fire_appointment_event(
    clinic_id: int,
    appointment_id: int,
    event: AppointmentEvent,
    db: Session = Depends(get_db)
):
    try:
        appointment, result = AppointmentService.fire_event(db, clinic_id, appointment_id, event)
        return AppointmentEventResponse(
            appointment=AppointmentResponse.from_appointment(appointment),
            event=result.event.value,
            previous_state=result.previous_state.value,
            new_state=result.new_state.value,
        )
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.get(
    "/appointments/{appointment_id}/event-logs",
    summary="Get appointment audit trail",
    response_model=AppointmentEventLogListResponse,
)
async def get_appointment_event_logs(
    clinic_id: int,
    appointment_id: int,
    db: Session = Depends(get_db)
):
    try:
        logs = AppointmentService.get_event_logs(db, clinic_id, appointment_id)
        return AppointmentEventLogListResponse(
            event_logs=[AppointmentEventLogResponse.from_log(log) for log in logs]
        )
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.post(
    "/appointments/{appointment_id}/confirm",
    summary="Patient confirms assistance",
    response_model=AppointmentResponse,
)
async def confirm_appointment(
    clinic_id: int,
    appointment_id: int,
    db: Session = Depends(get_db)
):
    """
    Public confirmation link sent to patients.

    Only appointments that are still just created can be confirmed (409 otherwise).
    """
    try:
        appointment = AppointmentService.confirm_by_patient(db, clinic_id, appointment_id)
        return AppointmentResponse.from_appointment(appointment)
    except SchedulingError as e:
        raise scheduling_error_to_http(e)
