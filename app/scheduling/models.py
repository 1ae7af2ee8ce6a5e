# app/scheduling/models.py
import enum
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

# id provisorio para borradores que todavía no se guardaron
DRAFT_ID = "temp-id"


class AppointmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    completed = "completed"
    canceled = "canceled"
    no_show = "no_show"


# solo estos ocupan agenda (conflictos / cupo diario)
ACTIVE_STATUSES = frozenset({AppointmentStatus.scheduled, AppointmentStatus.completed})


class AppointmentType(str, enum.Enum):
    evaluation = "evaluation"
    session = "session"
    return_visit = "return"
    pilates = "pilates"
    urgent = "urgent"
    teleconsulta = "teleconsulta"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"


class RecurrenceType(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"


class RecurrenceRule(BaseModel):
    # sin validación de rangos: una regla mal armada se reporta como error
    # bloqueante en el motor, no como excepción
    type: RecurrenceType = RecurrenceType.weekly
    interval: int = 1
    end_date: Optional[date] = None
    occurrences: Optional[int] = None


class Appointment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    patient_id: str
    therapist_id: str
    starts_at: datetime
    ends_at: datetime
    status: AppointmentStatus = AppointmentStatus.scheduled
    type: AppointmentType = AppointmentType.session
    value: Optional[float] = None
    payment_status: PaymentStatus = PaymentStatus.pending
    recurrence_rule: Optional[RecurrenceRule] = None
    series_id: Optional[str] = None
    session_number: Optional[int] = None
    total_sessions: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_times(self):
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at debe ser posterior a starts_at")
        return self

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class ValidationResult(BaseModel):
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def is_valid(self) -> bool:
        return not self.errors


class QuickValidation(BaseModel):
    is_valid: bool
    message: Optional[str] = None


class SeriesValidation(BaseModel):
    instances: list[Appointment] = Field(default_factory=list)
    result: ValidationResult = Field(default_factory=ValidationResult)
