"""
Patient package model.

A patient package is a prepaid bundle of appointments. Status changes on one
appointment of a live package (assistance, cancellation, billing) are
propagated to every other appointment in the package. Soft-deleting the
package detaches its appointments from that cascade.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base


class PatientPackage(Base):
    """Prepaid package of appointments for one patient."""

    __tablename__ = "patient_packages"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), index=True)

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Name of the purchased service package."""

    is_deleted: Mapped[bool] = mapped_column(default=False)
    """Soft delete flag. Deleted packages no longer cascade status changes."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    patient = relationship("Patient")

    appointments = relationship("Appointment", back_populates="patient_package")
