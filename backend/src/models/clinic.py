"""
Clinic model representing a tenant of the scheduling system.

A clinic is the top-level entity that owns doctors, patients, appointment
types, packages and appointments. Every query in the system is scoped by an
explicit clinic_id. Clinic behavior toggles live in a JSON settings column
validated by the ClinicSettings schema.
"""

from datetime import datetime
from typing import Any, Dict, List, Set

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import (
    DEFAULT_MAX_RECURRENCE_OCCURRENCES,
    DEFAULT_RECURRENCE_HORIZON_DAYS,
    DEFAULT_REMINDER_HOURS_BEFORE,
    MAX_STRING_LENGTH,
)
from core.database import Base

SUNDAY = 6  # datetime.weekday()


# Settings schema validation models
class SchedulingSettings(BaseModel):
    """Schema for booking and lifecycle guard settings."""
    concurrent_appointments_for_doctor_allowed: bool = Field(default=False, description="Allow a doctor to hold overlapping appointments.")
    appointments_can_start_in_the_past: bool = Field(default=False, description="Allow booking appointments whose start time has already passed.")
    work_on_sunday_enabled: bool = Field(default=False, description="Whether the clinic accepts appointments on Sundays.")
    closed_weekdays: List[int] = Field(default_factory=list, description="Additional weekdays (0=Monday..6=Sunday) on which bookings are refused.")
    enable_appointment_state_log: bool = Field(default=False, description="Audit in-progress appointments; forbids canceling them.")
    pre_registration_enabled: bool = Field(default=False, description="Create a financial record line when the appointment is printed.")
    notifications_for_periodic_appointments_enabled: bool = Field(default=False, description="Periodic appointments are handled by notifications instead of materialized series.")
    recurrence_horizon_days: int = Field(default=DEFAULT_RECURRENCE_HORIZON_DAYS, ge=1, le=3650)
    max_recurrence_occurrences: int = Field(default=DEFAULT_MAX_RECURRENCE_OCCURRENCES, ge=1, le=520)

    @field_validator('closed_weekdays')
    @classmethod
    def validate_weekdays(cls, value: List[int]) -> List[int]:
        for weekday in value:
            if weekday < 0 or weekday > 6:
                raise ValueError(f"Invalid weekday: {weekday}")
        return sorted(set(value))

    def disabled_weekdays(self) -> Set[int]:
        """Weekdays on which new bookings are refused."""
        disabled = set(self.closed_weekdays)
        if not self.work_on_sunday_enabled:
            disabled.add(SUNDAY)
        return disabled


class NotificationSettings(BaseModel):
    """Schema for notification settings."""
    reminder_hours_before: int = Field(default=DEFAULT_REMINDER_HOURS_BEFORE, ge=1, le=168)
    send_creation_notifications: bool = Field(default=True, description="Notify the patient when a series root is booked.")


class ClinicSettings(BaseModel):
    """Schema for all clinic settings."""
    scheduling_settings: SchedulingSettings = Field(default_factory=SchedulingSettings)
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)


class Clinic(Base):
    """
    Clinic entity.

    Owns all scheduling data and carries the configuration consumed by the
    conflict validator and lifecycle guards.
    """

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the clinic."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Human-readable name of the clinic."""

    settings: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    """
    JSON column containing all clinic settings with validated schema.

    Structure (matches ClinicSettings Pydantic model):
    {
        "scheduling_settings": {
            "concurrent_appointments_for_doctor_allowed": false,
            "appointments_can_start_in_the_past": false,
            "work_on_sunday_enabled": false,
            "closed_weekdays": [],
            "enable_appointment_state_log": false,
            "pre_registration_enabled": false,
            "notifications_for_periodic_appointments_enabled": false,
            "recurrence_horizon_days": 365,
            "max_recurrence_occurrences": 52
        },
        "notification_settings": {
            "reminder_hours_before": 48,
            "send_creation_notifications": true
        }
    }
    """

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    """Timestamp when the clinic was first created."""

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    """Timestamp when the clinic was last updated."""

    def get_validated_settings(self) -> ClinicSettings:
        """Get settings with schema validation."""
        return ClinicSettings.model_validate(self.settings or {})

    def set_validated_settings(self, settings: ClinicSettings):
        """Set settings with schema validation."""
        self.settings = settings.model_dump()

    # Relationships
    doctors = relationship("Doctor", back_populates="clinic")
    """Doctors working at this clinic."""

    patients = relationship("Patient", back_populates="clinic")
    """Patients registered with this clinic."""

    appointment_types = relationship("AppointmentType", back_populates="clinic")
    """Types of appointments offered by this clinic."""
