"""
Utility functions for lookups of soft-deletable entities.

Appointments keep pointing at packages, types and patients after those are
soft deleted. Callers that need to resolve such references pass
`include_deleted=True`; everything else gets active rows only.
"""

from typing import Optional

from sqlalchemy.orm import Session

from models import AppointmentType, Doctor, Patient, PatientPackage


def get_patient_package(
    db: Session,
    clinic_id: int,
    patient_package_id: int,
    include_deleted: bool = False
) -> Optional[PatientPackage]:
    """
    Get a patient package of the clinic.

    Args:
        db: Database session
        clinic_id: Clinic ID
        patient_package_id: Package ID
        include_deleted: If True, soft-deleted packages are returned too

    Returns:
        PatientPackage or None if not found
    """
    query = db.query(PatientPackage).filter(
        PatientPackage.id == patient_package_id,
        PatientPackage.clinic_id == clinic_id,
    )
    if not include_deleted:
        query = query.filter(PatientPackage.is_deleted == False)
    return query.first()


def get_appointment_type(
    db: Session,
    clinic_id: int,
    appointment_type_id: int,
    include_deleted: bool = False
) -> Optional[AppointmentType]:
    """Get an appointment type of the clinic, optionally including soft-deleted ones."""
    query = db.query(AppointmentType).filter(
        AppointmentType.id == appointment_type_id,
        AppointmentType.clinic_id == clinic_id,
    )
    if not include_deleted:
        query = query.filter(AppointmentType.is_deleted == False)
    return query.first()


def get_patient(
    db: Session,
    clinic_id: int,
    patient_id: int,
    include_deleted: bool = False
) -> Optional[Patient]:
    query = db.query(Patient).filter(Patient.id == patient_id, Patient.clinic_id == clinic_id)
    if not include_deleted:
        query = query.filter(Patient.is_deleted == False)
    return query.first()


def get_doctor(
    db: Session,
    clinic_id: int,
    doctor_id: int,
    include_deleted: bool = False,
    for_update: bool = False
) -> Optional[Doctor]:
    """
    Get a doctor of the clinic.

    With `for_update=True` the doctor row is locked until the transaction
    ends, which serializes bookings on that doctor's calendar.
    """
    query = db.query(Doctor).filter(Doctor.id == doctor_id, Doctor.clinic_id == clinic_id)
    if not include_deleted:
        query = query.filter(Doctor.is_deleted == False)
    if for_update:
        query = query.with_for_update()
    return query.first()
