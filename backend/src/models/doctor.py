"""
Doctor model.

Doctors own the calendars that the conflict validator protects. The same
table holds referencing doctors, who are notified when an appointment they
referred is completed.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base


class Doctor(Base):
    """Doctor entity belonging to a single clinic."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    """Reference to the clinic where this doctor works."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Address used for completion notifications when the doctor refers patients."""

    is_deleted: Mapped[bool] = mapped_column(default=False)
    """Soft delete flag."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    clinic = relationship("Clinic", back_populates="doctors")

    __table_args__ = (
        Index('idx_doctors_clinic', 'clinic_id'),
    )
