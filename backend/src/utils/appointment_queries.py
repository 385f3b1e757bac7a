"""
Utility functions for consistent appointment queries.

Every function takes the clinic id explicitly; there is no ambient tenant
filter. Canceled appointments are excluded unless the function name or an
`include_canceled` argument says otherwise.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session

from core.constants import UPCOMING_APPOINTMENTS_FOR_PATIENT_LIMIT
from models import Appointment


def filter_active_appointments(query: Query[Appointment]) -> Query[Appointment]:
    """
    Apply the soft delete filter to appointment queries.

    Args:
        query: Base query for Appointment

    Returns:
        Query filtered to exclude canceled appointments
    """
    return query.filter(Appointment.canceled == False)


def appointments_for_clinic(
    db: Session,
    clinic_id: int,
    include_canceled: bool = False
) -> Query[Appointment]:
    """
    Base query for the appointments of one clinic.

    Args:
        db: Database session
        clinic_id: Clinic ID
        include_canceled: If True, canceled appointments are kept

    Returns:
        Query scoped to the clinic
    """
    query = db.query(Appointment).filter(Appointment.clinic_id == clinic_id)
    if not include_canceled:
        query = filter_active_appointments(query)
    return query


def get_appointment(
    db: Session,
    clinic_id: int,
    appointment_id: int,
    include_canceled: bool = True,
    for_update: bool = False
) -> Optional[Appointment]:
    """Fetch one appointment of the clinic, optionally locking its row."""
    query = appointments_for_clinic(db, clinic_id, include_canceled).filter(
        Appointment.id == appointment_id
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def overlapping_for_doctor(
    db: Session,
    clinic_id: int,
    doctor_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_appointment_id: Optional[int] = None
) -> Query[Appointment]:
    """
    Active appointments of a doctor that overlap the half-open range [start_time, end_time).

    Two ranges overlap when each one starts before the other ends, so an
    appointment ending exactly at start_time does not overlap.

    Args:
        db: Database session
        clinic_id: Clinic ID
        doctor_id: Doctor whose calendar is checked
        start_time: Candidate start (clinic-local, naive)
        end_time: Candidate end (clinic-local, naive)
        exclude_appointment_id: Appointment being updated, never counted against itself

    Returns:
        Query of overlapping appointments ordered by start time
    """
    query = appointments_for_clinic(db, clinic_id).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.start_time.asc())


def in_time_range(
    db: Session,
    clinic_id: int,
    range_start: datetime,
    range_end: datetime,
    include_canceled: bool = False
) -> Query[Appointment]:
    """
    Appointments touching a calendar range.

    An appointment matches when it starts inside the range, ends inside the
    range, or encloses the whole range.
    """
    return appointments_for_clinic(db, clinic_id, include_canceled).filter(
        or_(
            and_(Appointment.start_time >= range_start, Appointment.start_time <= range_end),
            and_(Appointment.end_time >= range_start, Appointment.end_time <= range_end),
            and_(Appointment.start_time <= range_start, Appointment.end_time >= range_end),
        )
    )


def upcoming_for_patient(
    db: Session,
    clinic_id: int,
    patient_id: int,
    now: datetime,
    limit: int = UPCOMING_APPOINTMENTS_FOR_PATIENT_LIMIT
) -> List[Appointment]:
    """Next active appointments of a patient starting at or after `now`, soonest first."""
    return (
        appointments_for_clinic(db, clinic_id)
        .filter(Appointment.patient_id == patient_id, Appointment.start_time >= now)
        .order_by(Appointment.start_time.asc(), Appointment.id.asc())
        .limit(limit)
        .all()
    )


def starting_in_window(
    db: Session,
    clinic_id: int,
    window_start: datetime,
    window_hours: int
) -> Query[Appointment]:
    """Active appointments whose start falls in [window_start, window_start + window_hours)."""
    window_end = window_start + timedelta(hours=window_hours)
    return appointments_for_clinic(db, clinic_id).filter(
        Appointment.start_time >= window_start,
        Appointment.start_time < window_end,
    )


def in_package(
    db: Session,
    clinic_id: int,
    patient_package_id: int,
    exclude_appointment_id: Optional[int] = None
) -> Query[Appointment]:
    """Active appointments consumed from a patient package."""
    query = appointments_for_clinic(db, clinic_id).filter(
        Appointment.patient_package_id == patient_package_id
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query


def series_members(
    db: Session,
    clinic_id: int,
    root_id: int,
    after: Optional[datetime] = None,
    exclude_appointment_id: Optional[int] = None
) -> List[Appointment]:
    """
    Active members of a recurrence series, the root included.

    Args:
        db: Database session
        clinic_id: Clinic ID
        root_id: ID of the series root
        after: If set, only members starting strictly after this time
        exclude_appointment_id: Member to leave out (usually the one being edited)

    Returns:
        Members ordered by start time
    """
    query = appointments_for_clinic(db, clinic_id).filter(
        or_(Appointment.id == root_id, Appointment.parent_id == root_id)
    )
    if after is not None:
        query = query.filter(Appointment.start_time > after)
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.start_time.asc()).all()
