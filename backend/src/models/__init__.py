# Package initialization
# Import all models to ensure relationships are properly established
from .clinic import Clinic
from .doctor import Doctor
from .patient import Patient
from .appointment_type import AppointmentType
from .patient_package import PatientPackage
from .appointment import Appointment
from .appointment_event_log import AppointmentEventLog
from .notification import Notification
from .financial_record_line import FinancialRecordLine, AppointmentFinancialRecordLine

__all__ = [
    "Clinic",
    "Doctor",
    "Patient",
    "AppointmentType",
    "PatientPackage",
    "Appointment",
    "AppointmentEventLog",
    "Notification",
    "FinancialRecordLine",
    "AppointmentFinancialRecordLine",
]
