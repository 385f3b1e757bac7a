"""
Shared type definitions for the clinic scheduling backend.

This module contains enums and dataclasses that are used across multiple services.
"""

from shared_types.scheduling import (
    AppointmentEvent,
    AppointmentState,
    Frequency,
    IN_PROGRESS_STATES,
    SchedulingCandidate,
)

__all__ = [
    "AppointmentEvent",
    "AppointmentState",
    "Frequency",
    "IN_PROGRESS_STATES",
    "SchedulingCandidate",
]
