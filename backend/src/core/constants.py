"""Application constants and configuration values."""

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 2000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development
CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
]

# Compact booking time strings ("dd-mm-YYYY-H-MM") get a fixed slot length
DEFAULT_SLOT_MINUTES = 30

# Recurrence defaults (overridable per clinic in scheduling settings)
DEFAULT_RECURRENCE_HORIZON_DAYS = 365
DEFAULT_MAX_RECURRENCE_OCCURRENCES = 52
BIWEEKLY_INTERVAL_WEEKS = 2

# Upcoming appointments listed for a patient
UPCOMING_APPOINTMENTS_FOR_PATIENT_LIMIT = 10

# Appointment reminders
DEFAULT_REMINDER_HOURS_BEFORE = 48
REMINDER_WINDOW_HOURS = 1  # Appointments starting within this window after the offset are reminded
REMINDER_SCHEDULER_MAX_INSTANCES = 1  # Prevent overlapping scheduler runs

# Error messages surfaced to API clients
ERROR_REQUIRED = "can't be blank"
ERROR_END_BEFORE_START = "must be after start time"
ERROR_START_IN_PAST = "can't be in the past"
ERROR_DISABLED_WEEKDAY = "falls on a day the clinic does not work"
ERROR_ALREADY_BOOKED = "the doctor already has an appointment at this time"
ERROR_PATIENT_VALIDATION_CONFLICT = "patient can't be validated and fail validation at the same time"
ERROR_OCCURRENCE_CONFLICT = "the doctor already has an appointment on {when}"
ERROR_ASSISTED_CANNOT_CHANGE = "assistance can't be confirmed once the appointment has progressed"
ERROR_CANNOT_CANCEL = "appointment in state '{state}' can't be canceled"
ERROR_INVALID_TRANSITION = "event '{event}' is not allowed from state '{state}'"
ERROR_CANNOT_CONFIRM = "appointment can no longer be confirmed"
ERROR_NOT_FOUND = "does not exist"
ERROR_INVALID_TIME_STRING = "is not a valid booking time"
ERROR_INVALID_FREQUENCY = "is not a valid frequency"
