# app/scheduling/conflicts.py
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from typing import Optional

from app.scheduling.models import Appointment


def overlaps(a: Appointment, b: Appointment) -> bool:
    # intervalos semiabiertos: 09:00-10:00 y 10:00-11:00 no se pisan
    return a.starts_at < b.ends_at and a.ends_at > b.starts_at


def _same_batch_sibling(candidate: Appointment, other: Appointment, batch_ids: set[str]) -> bool:
    return (
        candidate.series_id is not None
        and other.series_id == candidate.series_id
        and other.id in batch_ids
    )


def find_conflict(
    candidates: Sequence[Appointment],
    existing: Sequence[Appointment],
    ignore_id: Optional[str] = None,
) -> Optional[Appointment]:
    """
    Primer turno de `existing` que se solapa con algún candidato del mismo
    terapeuta. Recorre los candidatos en orden de generación y `existing` en
    su orden original; devuelve None si no hay conflicto.
    """
    # borradores sin id nunca coinciden con ignore_id
    relevant = [
        ap for ap in existing
        if ap.is_active and (ignore_id is None or ap.id != ignore_id)
    ]
    batch_ids = {c.id for c in candidates if c.id is not None}

    for candidate in candidates:
        if not candidate.is_active:
            continue
        for other in relevant:
            if other.therapist_id != candidate.therapist_id:
                continue
            if other is candidate or (other.id is not None and other.id == candidate.id):
                continue
            if _same_batch_sibling(candidate, other, batch_ids):
                continue
            if overlaps(candidate, other):
                return other
    return None


def _gap_between(a: Appointment, b: Appointment) -> timedelta:
    if overlaps(a, b):
        return timedelta(0)
    if b.starts_at >= a.ends_at:
        return b.starts_at - a.ends_at
    return a.starts_at - b.ends_at


def has_minimum_gap_between_appointments(
    appointment: Appointment,
    all_appointments: Iterable[Appointment],
    minimum_gap_minutes: int = 60,
) -> bool:
    """False si otro turno activo del mismo paciente queda a menos del intervalo mínimo."""
    minimum = timedelta(minutes=minimum_gap_minutes)
    for other in all_appointments:
        if other.patient_id != appointment.patient_id or not other.is_active:
            continue
        if other is appointment or (other.id is not None and other.id == appointment.id):
            continue
        if _gap_between(appointment, other) < minimum:
            return False
    return True


def is_under_daily_appointment_limit(
    therapist_id: str,
    day: date | datetime,
    all_appointments: Iterable[Appointment],
    max_per_day: int = 12,
    ignore_id: Optional[str] = None,
) -> bool:
    """True si el terapeuta todavía tiene cupo ese día para un turno más."""
    if isinstance(day, datetime):
        day = day.date()
    count = sum(
        1
        for ap in all_appointments
        if ap.therapist_id == therapist_id
        and ap.starts_at.date() == day
        and ap.is_active
        and (ignore_id is None or ap.id != ignore_id)
    )
    return count < max_per_day
