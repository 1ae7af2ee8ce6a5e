from app.scheduling.config import DEFAULT_CONFIG, SchedulingConfig
from app.scheduling.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    PaymentStatus,
    QuickValidation,
    RecurrenceRule,
    RecurrenceType,
    SeriesValidation,
    ValidationResult,
)
from app.scheduling.business_hours import is_within_business_hours
from app.scheduling.conflicts import (
    find_conflict,
    has_minimum_gap_between_appointments,
    is_under_daily_appointment_limit,
)
from app.scheduling.recurrence import InvalidRecurrenceRule, generate_recurrences
from app.scheduling.rules import quick_validate_appointment, validate_appointment, validate_series
