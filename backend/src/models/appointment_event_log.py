"""
Append-only audit trail of appointment lifecycle events.

One row is written every time a lifecycle event is fired on a persisted
appointment. Rows are never updated or deleted.
"""

from datetime import datetime

from sqlalchemy import String, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class AppointmentEventLog(Base):
    """Record of the state an appointment reached and when."""

    __tablename__ = "appointment_event_logs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id"))

    state: Mapped[str] = mapped_column(String(50))
    """State the appointment transitioned into."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    appointment = relationship("Appointment", back_populates="event_logs")

    __table_args__ = (
        Index('idx_event_logs_appointment', 'appointment_id'),
    )
