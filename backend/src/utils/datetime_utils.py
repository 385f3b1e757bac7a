"""
Datetime utilities for consistent timezone handling across the application.

All scheduling logic runs in clinic-local time (a fixed UTC offset from
configuration). Appointment datetimes are persisted naive and interpreted as
clinic-local, so every incoming value is normalized with to_clinic_naive()
before it is compared or stored.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

from core.config import CLINIC_UTC_OFFSET_HOURS
from core.constants import DEFAULT_SLOT_MINUTES

logger = logging.getLogger(__name__)

CLINIC_TZ = timezone(timedelta(hours=CLINIC_UTC_OFFSET_HOURS))


def clinic_now() -> datetime:
    """
    Get current clinic datetime.

    Returns:
        Current datetime with the clinic timezone attached
    """
    return datetime.now(CLINIC_TZ)


def clinic_now_naive() -> datetime:
    """Current clinic-local time without tzinfo, comparable with stored values."""
    return clinic_now().replace(tzinfo=None)


def ensure_clinic_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the clinic timezone.

    Naive values are assumed to already be clinic-local.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=CLINIC_TZ)
    return dt.astimezone(CLINIC_TZ)


def to_clinic_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive clinic-local time for storage and comparison.

    Aware values are converted to the clinic offset first; naive values are
    returned unchanged.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(CLINIC_TZ).replace(tzinfo=None)


def beginning_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)


def occupied_slot(
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    is_all_day: bool = False
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Slot blocked on the doctor's calendar. All-day bookings block the whole day of their start."""
    if is_all_day and start_time is not None:
        return beginning_of_day(start_time), end_of_day(start_time)
    return start_time, end_time


def format_datetime(dt: datetime) -> str:
    """
    Format datetime for user-facing display in clinic time.

    Formats datetime as: "06/11/2007 12:00 PM" (day/month/year, 12-hour clock).

    Args:
        dt: Datetime to format (naive clinic-local or timezone-aware)

    Returns:
        Formatted datetime string
    """
    local_datetime = ensure_clinic_tz(dt)
    if local_datetime is None:
        raise ValueError("Cannot format None datetime")
    return local_datetime.strftime('%d/%m/%Y %I:%M %p')


def parse_booking_time_string(time_string: str) -> tuple[datetime, datetime]:
    """
    Parse a compact booking time string into a (start, end) slot.

    The format is "day-month-year-hour-minute" (e.g. "20-12-1990-8-00") and the
    slot always lasts DEFAULT_SLOT_MINUTES.

    Raises:
        ValueError: If the string does not match the format
    """
    try:
        day, month, year, hour, minute = (int(part) for part in time_string.split("-"))
        start = datetime(year, month, day, hour, minute, 0)
    except (AttributeError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid time format (expected dd-mm-YYYY-H-MM): {time_string}") from e

    return start, start + timedelta(minutes=DEFAULT_SLOT_MINUTES)


def parse_datetime_string_to_clinic(dt_str: str) -> datetime:
    """
    Parse an ISO format datetime string into naive clinic-local time.

    Handles:
    - ISO format with timezone (e.g., "2024-01-01T09:00:00-06:00")
    - ISO format with Z (UTC) (e.g., "2024-01-01T15:00:00Z")
    - ISO format without timezone (assumed clinic-local)

    Raises:
        ValueError: If the string cannot be parsed
    """
    normalized = dt_str.strip()
    if normalized.endswith('Z'):
        normalized = normalized[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise ValueError(f"Invalid datetime format: {dt_str}") from e
    result = to_clinic_naive(parsed)
    assert result is not None
    return result
