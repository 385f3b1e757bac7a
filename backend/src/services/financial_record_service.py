"""
Financial record lines for pre-registered appointments.

When a clinic uses pre-registration, printing an appointment registers it
under a pending charge for the patient. Appointments of a live package are
billed to the package; the rest are billed to their appointment type as
provided by their doctor. Lines are reused across appointments.
"""

import logging

from sqlalchemy.orm import Session

from models import Appointment, AppointmentFinancialRecordLine, FinancialRecordLine
from models.financial_record_line import BILLABLE_APPOINTMENT_TYPE, BILLABLE_PATIENT_PACKAGE
from services.patient_package_service import PatientPackageService

logger = logging.getLogger(__name__)


class FinancialRecordService:

    @staticmethod
    def register_appointment(db: Session, appointment: Appointment) -> FinancialRecordLine:
        """
        Find or create the financial record line for an appointment and link them.

        Returns:
            The line the appointment is registered under
        """
        package = PatientPackageService.get_live_package(db, appointment)
        if package is not None:
            billable_type, billable_id, doctor_id = BILLABLE_PATIENT_PACKAGE, package.id, None
        else:
            billable_type = BILLABLE_APPOINTMENT_TYPE
            billable_id = appointment.appointment_type_id
            doctor_id = appointment.doctor_id

        line = db.query(FinancialRecordLine).filter(
            FinancialRecordLine.clinic_id == appointment.clinic_id,
            FinancialRecordLine.patient_id == appointment.patient_id,
            FinancialRecordLine.billable_type == billable_type,
            FinancialRecordLine.billable_id == billable_id,
            FinancialRecordLine.doctor_id == doctor_id if doctor_id is not None
            else FinancialRecordLine.doctor_id.is_(None),
        ).first()

        if line is None:
            line = FinancialRecordLine(
                clinic_id=appointment.clinic_id,
                patient_id=appointment.patient_id,
                doctor_id=doctor_id,
                billable_type=billable_type,
                billable_id=billable_id,
            )
            db.add(line)
            db.flush()
            logger.info(f"Created financial record line {line.id} ({billable_type} {billable_id})")

        already_linked = db.query(AppointmentFinancialRecordLine).filter(
            AppointmentFinancialRecordLine.appointment_id == appointment.id,
            AppointmentFinancialRecordLine.financial_record_line_id == line.id,
        ).first()
        if already_linked is None:
            db.add(AppointmentFinancialRecordLine(
                appointment_id=appointment.id,
                financial_record_line_id=line.id,
            ))
            db.flush()

        return line
