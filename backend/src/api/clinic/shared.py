# pyright: reportMissingTypeStubs=false
"""
Shared helpers for clinic API endpoints.

Services raise the scheduling error taxonomy; endpoints convert it into
HTTPException with the helpers below so every domain answers the same way.
"""

from fastapi import HTTPException, status

from core.exceptions import (
    AppointmentNotFound,
    AppointmentValidationError,
    ClinicNotFound,
    SchedulingError,
    StateGuardViolation,
)


def scheduling_error_to_http(exc: SchedulingError) -> HTTPException:
    """
    Map a scheduling error to an HTTP error.

    - AppointmentValidationError -> 422 with every field error
    - StateGuardViolation (CannotCancel, InvalidTransition) -> 409 tied to the guarded field
    - AppointmentNotFound / ClinicNotFound -> 404
    """
    if isinstance(exc, AppointmentValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "Appointment is invalid",
                "errors": [error.to_dict() for error in exc.errors],
            },
        )
    if isinstance(exc, StateGuardViolation):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"field": exc.field, "message": exc.message, "state": exc.state},
        )
    if isinstance(exc, AppointmentNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    if isinstance(exc, ClinicNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clinic not found")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
