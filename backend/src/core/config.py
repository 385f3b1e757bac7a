"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    # Try multiple possible locations for .env file
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # .env (when run from src)
        pathlib.Path.cwd() / ".env",  # .env in current directory
        pathlib.Path.cwd().parent / ".env",  # .env in parent directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment ("1", "true", "yes" are truthy)."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Configuration constants with defaults
def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "postgresql://localhost/clinic_scheduler_dev"
    )

DATABASE_URL = get_database_url()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Clinic-local time. Appointment datetimes are stored naive in this offset.
CLINIC_UTC_OFFSET_HOURS = int(os.getenv("CLINIC_UTC_OFFSET_HOURS", "-6"))

# Outgoing mail
MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@clinic-scheduler.local")

# Background jobs
ENABLE_REMINDER_SCHEDULER = _get_bool("ENABLE_REMINDER_SCHEDULER", not is_testing)
