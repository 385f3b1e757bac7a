"""
Settings service for centralized clinic settings management.

The conflict validator, lifecycle guards and reminder job all read clinic
behavior toggles through this service.
"""

import logging

from sqlalchemy.orm import Session

from core.exceptions import ClinicNotFound
from models import Clinic
from models.clinic import ClinicSettings

logger = logging.getLogger(__name__)


class SettingsService:
    """
    Service class for settings operations.

    Provides centralized access to clinic settings with schema validation.
    """

    @staticmethod
    def get_clinic(db: Session, clinic_id: int) -> Clinic:
        """
        Get a clinic by ID.

        Raises:
            ClinicNotFound: If clinic not found
        """
        clinic = db.query(Clinic).filter(Clinic.id == clinic_id).first()
        if not clinic:
            raise ClinicNotFound(clinic_id)
        return clinic

    @staticmethod
    def get_clinic_settings(db: Session, clinic_id: int) -> ClinicSettings:
        """
        Get validated clinic settings.

        Args:
            db: Database session
            clinic_id: Clinic ID

        Returns:
            ClinicSettings object with validated settings

        Raises:
            ClinicNotFound: If clinic not found
        """
        return SettingsService.get_clinic(db, clinic_id).get_validated_settings()

    @staticmethod
    def update_clinic_settings(db: Session, clinic_id: int, settings: ClinicSettings) -> ClinicSettings:
        """
        Replace the clinic settings.

        The caller commits the session.

        Raises:
            ClinicNotFound: If clinic not found
        """
        clinic = SettingsService.get_clinic(db, clinic_id)
        clinic.set_validated_settings(settings)
        db.flush()
        logger.info(f"Updated settings for clinic {clinic_id}")
        return clinic.get_validated_settings()
