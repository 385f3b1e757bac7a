"""
Patient model representing individuals who receive treatment at clinics.

Each patient belongs to exactly one clinic and can have many appointments.
Patients are soft deleted so that historical appointments keep resolving.
"""

from sqlalchemy import String, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from core.constants import MAX_STRING_LENGTH
from core.database import Base


class Patient(Base):
    """
    Patient entity representing an individual who receives treatment at a clinic.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    """Reference to the clinic where this patient receives treatment."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Full name of the patient, as shown on the calendar."""

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Address used for appointment notifications."""

    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    """Timestamp when the patient was first created."""

    # Soft delete support
    is_deleted: Mapped[bool] = mapped_column(default=False)
    """Soft delete flag. True if this patient has been deleted."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    """Timestamp when the patient was soft deleted (if applicable)."""

    # Relationships
    clinic = relationship("Clinic", back_populates="patients")

    appointments = relationship("Appointment", back_populates="patient")
    """Relationship to all Appointment entities booked by this patient."""

    __table_args__ = (
        Index('idx_patients_clinic_phone', 'clinic_id', 'phone_number'),
    )
