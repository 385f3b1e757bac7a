"""
Patient package cascade.

Appointments consumed from the same prepaid package share their assistance,
cancellation and billing status. When one of them changes, the change is
applied to every other active appointment of the package with a single bulk
UPDATE scoped by the package id. A soft-deleted package no longer cascades:
the operation returns CascadeNoop and the siblings keep their values.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from models import Appointment, PatientPackage
from shared_types.scheduling import AppointmentState
from utils.appointment_queries import in_package
from utils.datetime_utils import clinic_now_naive
from utils.soft_delete_queries import get_patient_package

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeApplied:
    patient_package_id: int
    updated_count: int


@dataclass(frozen=True)
class CascadeNoop:
    """Cascade skipped on purpose. Not an error."""
    reason: str
    patient_package_id: Optional[int] = None


CascadeResult = Union[CascadeApplied, CascadeNoop]


class PatientPackageService:
    """Service class for patient package operations."""

    @staticmethod
    def get_live_package(db: Session, appointment: Appointment) -> Optional[PatientPackage]:
        """Package of the appointment, or None when absent or soft deleted."""
        if appointment.patient_package_id is None:
            return None
        return get_patient_package(db, appointment.clinic_id, appointment.patient_package_id)

    @staticmethod
    def _bulk_update_siblings(
        db: Session,
        appointment: Appointment,
        values: Dict[str, Any],
        action: str
    ) -> CascadeResult:
        if appointment.patient_package_id is None:
            return CascadeNoop("appointment has no patient package")

        package = PatientPackageService.get_live_package(db, appointment)
        if package is None:
            logger.info(
                f"Skipping {action} cascade for appointment {appointment.id}: "
                f"patient package {appointment.patient_package_id} is deleted"
            )
            return CascadeNoop("patient package is deleted", appointment.patient_package_id)

        updated = in_package(
            db,
            appointment.clinic_id,
            package.id,
            exclude_appointment_id=appointment.id,
        ).update(values, synchronize_session="fetch")

        logger.info(f"Cascaded {action} to {updated} appointments of patient package {package.id}")
        return CascadeApplied(package.id, updated)

    @staticmethod
    def propagate_assisted(db: Session, appointment: Appointment) -> CascadeResult:
        """Copy the assistance flag and its matching state (confirmed/just_created) to the package."""
        state = AppointmentState.CONFIRMED if appointment.assisted else AppointmentState.JUST_CREATED
        return PatientPackageService._bulk_update_siblings(
            db,
            appointment,
            {Appointment.assisted: appointment.assisted, Appointment.state: state.value},
            "assistance",
        )

    @staticmethod
    def propagate_canceled(db: Session, appointment: Appointment) -> CascadeResult:
        """Cancel every other active appointment of the package."""
        return PatientPackageService._bulk_update_siblings(
            db,
            appointment,
            {Appointment.canceled: True, Appointment.canceled_at: clinic_now_naive()},
            "cancellation",
        )

    @staticmethod
    def propagate_billed(db: Session, appointment: Appointment) -> CascadeResult:
        """Mark every other active appointment of the package as billed."""
        return PatientPackageService._bulk_update_siblings(
            db,
            appointment,
            {Appointment.state: AppointmentState.BILLED.value},
            "billing",
        )

    @staticmethod
    def soft_delete_package(db: Session, clinic_id: int, patient_package_id: int) -> bool:
        """
        Soft delete a patient package. Its appointments are kept but stop cascading.

        Returns:
            True if the package was deleted, False if it was not found or already deleted
        """
        package = get_patient_package(db, clinic_id, patient_package_id)
        if package is None:
            return False
        package.is_deleted = True
        package.deleted_at = clinic_now_naive()
        db.flush()
        logger.info(f"Soft deleted patient package {patient_package_id} in clinic {clinic_id}")
        return True
