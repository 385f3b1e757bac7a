# pyright: reportMissingTypeStubs=false
"""
Settings Management API endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.clinic.shared import scheduling_error_to_http
from core.database import get_db
from core.exceptions import SchedulingError
from models.clinic import ClinicSettings
from services import AppointmentService, SettingsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings", summary="Get clinic settings", response_model=ClinicSettings)
async def get_settings(
    clinic_id: int,
    db: Session = Depends(get_db)
):
    """Get the scheduling and notification settings of a clinic."""
    try:
        return SettingsService.get_clinic_settings(db, clinic_id)
    except SchedulingError as e:
        raise scheduling_error_to_http(e)


@router.put("/settings", summary="Update clinic settings", response_model=ClinicSettings)
async def update_settings(
    clinic_id: int,
    settings: ClinicSettings,
    db: Session = Depends(get_db)
):
    """
    Replace the clinic settings.

    The body is validated against the settings schema (422 on invalid values).
    """
    try:
        return AppointmentService.update_clinic_settings(db, clinic_id, settings)
    except SchedulingError as e:
        raise scheduling_error_to_http(e)
