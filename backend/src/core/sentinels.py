from typing import Any

class MissingType:
    """
    Type for the MISSING sentinel, representing an omitted update field.

    Appointment updates are partial: MISSING means "leave the stored value
    alone", while None means "clear it" (e.g. removing a referencer doctor
    or a recurrence frequency).
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(MissingType, cls).__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        return isinstance(other, MissingType)

    def __hash__(self) -> int:
        return hash("MISSING")

    def __copy__(self):
        return self

    def __deepcopy__(self, memo: Any):
        return self


MISSING = MissingType()


def is_provided(value: Any) -> bool:
    """Return True when an update field was supplied (including an explicit None)."""
    return not isinstance(value, MissingType)
