"""
Appointment type model representing different types of appointments offered by a clinic.

Appointment types define the services a clinic provides, such as "Initial
Consultation" or "Follow-up". Types are soft deleted; appointments keep
referencing them after deletion.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base


class AppointmentType(Base):
    """
    Appointment type entity representing a service or treatment offered by a clinic.
    """

    __tablename__ = "appointment_types"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the appointment type."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    """Reference to the clinic that offers this appointment type."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Human-readable name of the appointment type (e.g., 'Initial Consultation')."""

    duration_minutes: Mapped[int] = mapped_column(default=30)
    """Expected duration of appointments of this type in minutes."""

    is_deleted: Mapped[bool] = mapped_column(default=False)
    """Soft delete flag. True if this appointment type has been deleted."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    """Timestamp when the appointment type was soft deleted (if applicable)."""

    # Relationships
    clinic = relationship("Clinic", back_populates="appointment_types")
    """Relationship to the Clinic entity that owns this appointment type."""

    appointments = relationship("Appointment", back_populates="appointment_type")
    """Relationship to all Appointment instances that use this appointment type."""
