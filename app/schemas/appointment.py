from pydantic import BaseModel, Field, model_validator
from typing import Optional, Literal
from datetime import datetime

from app.scheduling.models import (
    Appointment as DraftAppointment,
    AppointmentStatus,
    AppointmentType,
    PaymentStatus,
    RecurrenceRule,
    ValidationResult,
)

DeleteScope = Literal["single", "following"]

class AppointmentCreate(BaseModel):
    patient_id: str
    therapist_id: str
    starts_at: datetime = Field(..., description="ISO datetime local, sin zona horaria")
    ends_at:   datetime
    type: AppointmentType = AppointmentType.session
    status: AppointmentStatus = AppointmentStatus.scheduled
    value: Optional[float] = None
    payment_status: PaymentStatus = PaymentStatus.pending
    session_number: Optional[int] = None
    total_sessions: Optional[int] = None
    notes: Optional[str] = None
    series_id: Optional[str] = None
    recurrence: Optional[RecurrenceRule] = None

    @model_validator(mode="after")
    def _check_times(self):
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at debe ser posterior a starts_at")
        return self

    def to_draft(self) -> DraftAppointment:
        data = self.model_dump(exclude={"recurrence"})
        return DraftAppointment(**data, recurrence_rule=self.recurrence)

class AppointmentUpdate(BaseModel):
    therapist_id: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    type: Optional[AppointmentType] = None
    status: Optional[AppointmentStatus] = None
    value: Optional[float] = None
    payment_status: Optional[PaymentStatus] = None
    session_number: Optional[int] = None
    total_sessions: Optional[int] = None
    notes: Optional[str] = None

class AppointmentOut(BaseModel):
    id: str
    patient_id: str
    therapist_id: str
    starts_at: datetime
    ends_at: datetime
    type: AppointmentType
    status: AppointmentStatus
    value: Optional[float] = None
    payment_status: PaymentStatus
    series_id: Optional[str] = None
    session_number: Optional[int] = None
    total_sessions: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

class SeriesValidationOut(BaseModel):
    result: ValidationResult
    occurrences: int
    starts: list[datetime]

class DeletedOut(BaseModel):
    deleted: int
