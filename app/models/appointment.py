import uuid
from datetime import datetime
from sqlalchemy import String, Enum, DateTime, Float, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base
from app.scheduling.models import AppointmentStatus, AppointmentType, PaymentStatus

class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # referencias opacas: pacientes y terapeutas viven en otro servicio
    therapist_id: Mapped[str] = mapped_column(String(36))
    patient_id: Mapped[str] = mapped_column(String(36), index=True)

    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    ends_at:   Mapped[datetime] = mapped_column(DateTime(timezone=False))

    type: Mapped[AppointmentType] = mapped_column(Enum(AppointmentType), default=AppointmentType.session)
    status: Mapped[AppointmentStatus] = mapped_column(Enum(AppointmentStatus), default=AppointmentStatus.scheduled, index=True)

    value: Mapped[float | None] = mapped_column(Float, nullable=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(Enum(PaymentStatus), default=PaymentStatus.pending)

    # serie: mismas instancias generadas por una recurrencia
    series_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_sessions: Mapped[int | None] = mapped_column(Integer, nullable=True)

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        # solapamientos / cupo diario del terapeuta
        Index("ix_appt_therapist_starts", "therapist_id", "starts_at"),
        Index("ix_appt_starts", "starts_at"),
    )
