"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across multiple API endpoints and background jobs.
"""

from .settings_service import SettingsService
from .scheduling_validator import SchedulingValidator
from .recurrence_service import AppointmentsRepeaterService
from .patient_package_service import PatientPackageService
from .notification_service import NotificationService
from .financial_record_service import FinancialRecordService
from .appointment_service import AppointmentService
from .reminder_service import ReminderService

__all__ = [
    "SettingsService",
    "SchedulingValidator",
    "AppointmentsRepeaterService",
    "PatientPackageService",
    "NotificationService",
    "FinancialRecordService",
    "AppointmentService",
    "ReminderService",
]
