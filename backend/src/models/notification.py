"""
Notification model.

Stores in-app notifications produced by appointment lifecycle events
(cancellations, completions, finished visit records). Email delivery is
handled separately by the notification service's mailer.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Notification(Base):
    """In-app notification tied to an appointment."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))

    notification_type: Mapped[str] = mapped_column(String(50))
    """Kind of notification, e.g. 'appointment_canceled' or 'visit_record_done'."""

    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id"))

    recipient_doctor_id: Mapped[Optional[int]] = mapped_column(ForeignKey("doctors.id"), nullable=True)
    """Doctor the notification is addressed to. NULL for clinic-wide notifications."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    appointment = relationship("Appointment")

    __table_args__ = (
        Index('idx_notifications_clinic_type', 'clinic_id', 'notification_type'),
    )
