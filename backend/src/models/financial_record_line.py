"""
Financial record lines created when appointments are pre-registered.

A line is billable either by a patient package or by an appointment type
provided by a specific doctor. Appointments are linked to the line they were
registered under through AppointmentFinancialRecordLine.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base

BILLABLE_PATIENT_PACKAGE = "patient_package"
BILLABLE_APPOINTMENT_TYPE = "appointment_type"


class FinancialRecordLine(Base):
    """Pending charge for a patient."""

    __tablename__ = "financial_record_lines"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))

    doctor_id: Mapped[Optional[int]] = mapped_column(ForeignKey("doctors.id"), nullable=True)
    """Doctor providing the service. NULL for package lines."""

    billable_type: Mapped[str] = mapped_column(String(50))
    """What the line bills for: 'patient_package' or 'appointment_type'."""

    billable_id: Mapped[int] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    appointment_links = relationship("AppointmentFinancialRecordLine", back_populates="financial_record_line")

    __table_args__ = (
        Index('idx_financial_lines_lookup', 'clinic_id', 'patient_id', 'billable_type', 'billable_id'),
    )


class AppointmentFinancialRecordLine(Base):
    """Link between an appointment and the financial record line it was registered under."""

    __tablename__ = "appointment_financial_record_lines"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id"))

    financial_record_line_id: Mapped[int] = mapped_column(ForeignKey("financial_record_lines.id"))

    financial_record_line = relationship("FinancialRecordLine", back_populates="appointment_links")

    __table_args__ = (
        UniqueConstraint('appointment_id', 'financial_record_line_id', name='uq_appointment_financial_line'),
    )
