"""
Appointment model representing scheduled appointments between patients and doctors.

Appointments are the core scheduling entity of the clinic system. Each
appointment links a patient, a doctor and an appointment type for a time slot
and carries its lifecycle state. Appointments are never physically deleted:
canceling sets the `canceled` flag and default queries exclude those rows.

Recurring appointments form a series: the root keeps the recurrence
definition and every generated member points at it through `parent_id`.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, Index, DateTime, Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_DESCRIPTION_LENGTH, MAX_STRING_LENGTH
from core.database import Base
from shared_types.scheduling import AppointmentState, Frequency
from utils.datetime_utils import format_datetime, parse_booking_time_string


class Appointment(Base):
    """
    Appointment entity representing a scheduled session between a patient and a doctor.

    The `state` column only changes through lifecycle events applied by
    AppointmentService; the initial value is `just_created`.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the appointment."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    """Tenant owning this appointment. Every query filters on it explicitly."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    """Reference to the patient who has booked this appointment."""

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))
    """Reference to the doctor whose calendar holds this appointment."""

    appointment_type_id: Mapped[int] = mapped_column(ForeignKey("appointment_types.id"))
    """Reference to the type of appointment (service/treatment being provided)."""

    referencer_doctor_id: Mapped[Optional[int]] = mapped_column(ForeignKey("doctors.id"), nullable=True)
    """Doctor who referred the patient. Notified when the appointment is completed."""

    patient_package_id: Mapped[Optional[int]] = mapped_column(ForeignKey("patient_packages.id"), nullable=True)
    """Prepaid package this appointment is consumed from (if any)."""

    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("appointments.id"), nullable=True)
    """Root of the recurrence series this appointment was generated from."""

    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    """Start of the appointment in clinic-local time."""

    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    """End of the appointment in clinic-local time. Always after start_time."""

    is_all_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    assisted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """Whether the patient confirmed assistance. Toggles the confirmed/just_created state."""

    canceled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """Soft delete flag. Canceled appointments are kept for audit."""

    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """Set when the patient confirms through the public confirmation link."""

    recursive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """True for the root of a materialized recurrence series."""

    is_initial_recurrency: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    frequency: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """Recurrence frequency. Valid values: 'monthly', 'weekly', 'biweekly', 'yearly'."""

    frequency_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    """Multiplier applied to the frequency offset (every N months, weeks or years)."""

    last_recurrent_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    """Start time of the last materialized member of the series."""

    last_recurrent_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    state: Mapped[str] = mapped_column(String(50), default=AppointmentState.JUST_CREATED.value, nullable=False)
    """Current lifecycle state. See AppointmentState for valid values."""

    patient_validated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    patient_validate_failed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """
    Whether the reminder was sent for this appointment.

    Reset whenever start_time changes so a rescheduled appointment gets a new reminder.
    """

    description: Mapped[Optional[str]] = mapped_column(String(MAX_DESCRIPTION_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    """Relationship to the Patient entity who booked this appointment."""

    doctor = relationship("Doctor", foreign_keys=[doctor_id])

    appointment_type = relationship("AppointmentType", back_populates="appointments")
    """
    Relationship to the AppointmentType entity.

    Not filtered by is_deleted, so the type keeps resolving after it is soft deleted.
    """

    patient_package = relationship("PatientPackage", back_populates="appointments")

    event_logs = relationship(
        "AppointmentEventLog",
        back_populates="appointment",
        order_by="AppointmentEventLog.id",
    )
    """Append-only audit trail of fired lifecycle events."""

    @property
    def lifecycle_state(self) -> AppointmentState:
        return AppointmentState(self.state)

    @property
    def frequency_enum(self) -> Optional[Frequency]:
        return Frequency(self.frequency) if self.frequency else None

    @property
    def series_root_id(self) -> int:
        """Identifier shared by every member of this appointment's series."""
        return self.parent_id or self.id

    @property
    def title(self) -> str:
        """Calendar title: the patient's full name."""
        return self.patient.full_name if self.patient else ""

    @property
    def type_name(self) -> str:
        return self.appointment_type.name if self.appointment_type else ""

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    def format_for_display(self) -> str:
        """Start time as shown to patients, e.g. '05/03/2026 09:30 AM'."""
        return format_datetime(self.start_time)

    def set_time_string(self, time_string: str) -> None:
        """
        Set start and end from a compact 'dd-mm-YYYY-H-MM' string.

        The end is one default slot after the start.

        Raises:
            ValueError: If the string is malformed
        """
        self.start_time, self.end_time = parse_booking_time_string(time_string)

    # Table indexes for performance
    __table_args__ = (
        # Overlap lookup for the conflict validator
        Index('idx_appointments_clinic_doctor_start', 'clinic_id', 'doctor_id', 'start_time'),
        Index('idx_appointments_clinic_patient', 'clinic_id', 'patient_id'),
        Index('idx_appointments_package', 'patient_package_id'),
        Index('idx_appointments_parent', 'parent_id'),
        # Index for reminder service queries
        Index('idx_appointments_reminder', 'clinic_id', 'canceled', 'reminder_sent', 'start_time'),
    )
