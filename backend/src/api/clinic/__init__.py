# pyright: reportMissingTypeStubs=false
"""
Clinic API modules.

This package contains the clinic-scoped API endpoints organized by domain.
"""

from api.clinic.appointments import router as appointments_router
from api.clinic.settings import router as settings_router

__all__ = [
    'appointments_router',
    'settings_router',
]
