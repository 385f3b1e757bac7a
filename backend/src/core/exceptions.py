"""
Scheduling error taxonomy.

Services raise these exceptions; the API layer converts them into HTTP
responses. Field-level validation problems are accumulated into a single
AppointmentValidationError, while lifecycle guards raise a single
StateGuardViolation tied to the guarded field.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class FieldError:
    """A single validation failure on one appointment field."""
    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


class SchedulingError(Exception):
    """Base class for all scheduling business errors."""


class AppointmentValidationError(SchedulingError):
    """One or more field errors collected while validating an appointment."""

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(f"{e.field} {e.message}" for e in self.errors))

    def errors_on(self, field: str) -> List[FieldError]:
        """Errors recorded for a given field."""
        return [error for error in self.errors if error.field == field]

    def as_dict(self) -> Dict[str, List[str]]:
        """Group messages by field, the shape returned to API clients."""
        grouped: Dict[str, List[str]] = {}
        for error in self.errors:
            grouped.setdefault(error.field, []).append(error.message)
        return grouped


class StateGuardViolation(SchedulingError):
    """A flag change or transition blocked by the appointment's lifecycle state."""

    def __init__(self, field: str, message: str, state: Optional[str] = None):
        self.field = field
        self.message = message
        self.state = state
        super().__init__(f"{field}: {message}")


class CannotCancel(StateGuardViolation):
    """Cancellation rejected because the appointment is in progress."""

    def __init__(self, message: str, state: str):
        super().__init__("canceled", message, state)


class InvalidTransition(StateGuardViolation):
    """Event fired from a state it does not accept."""

    def __init__(self, event: str, state: str, message: str):
        self.event = event
        super().__init__("state", message, state)


class AppointmentNotFound(SchedulingError):
    """Appointment does not exist within the requested clinic."""

    def __init__(self, appointment_id: int, clinic_id: int):
        self.appointment_id = appointment_id
        self.clinic_id = clinic_id
        super().__init__(f"Appointment {appointment_id} not found in clinic {clinic_id}")


class ClinicNotFound(SchedulingError):
    """Clinic does not exist."""

    def __init__(self, clinic_id: int):
        self.clinic_id = clinic_id
        super().__init__(f"Clinic {clinic_id} not found")
