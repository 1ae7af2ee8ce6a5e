# app/scheduling/business_hours.py
from datetime import datetime, timedelta
from typing import Optional

from app.scheduling.config import DEFAULT_CONFIG, SATURDAY, BusinessWindow, SchedulingConfig
from app.scheduling.models import Appointment

WEEKDAY_PLURAL = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábados", "domingos")


def fmt_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def business_hours_for(day: datetime, config: SchedulingConfig = DEFAULT_CONFIG) -> Optional[BusinessWindow]:
    return config.window_for(day.weekday())


def is_within_business_hours(appointment: Appointment, config: SchedulingConfig = DEFAULT_CONFIG) -> bool:
    """
    El turno entra en el horario del día de starts_at: empieza después de la
    apertura y termina antes del cierre del mismo día (no cruza medianoche).
    """
    window = business_hours_for(appointment.starts_at, config)
    if window is None:
        return False

    midnight = appointment.starts_at.replace(hour=0, minute=0, second=0, microsecond=0)
    start = appointment.starts_at - midnight
    end = appointment.ends_at - midnight
    opens, closes = (timedelta(minutes=m) for m in window)
    return opens <= start and end <= closes


def outside_hours_message(appointment: Appointment, config: SchedulingConfig = DEFAULT_CONFIG) -> str:
    weekday = appointment.starts_at.weekday()
    window = config.window_for(weekday)
    if window is None:
        return f"La clínica no atiende los {WEEKDAY_PLURAL[weekday]}."
    opens, closes = (fmt_minute(m) for m in window)
    if weekday == SATURDAY:
        return f"Los sábados la clínica atiende solo de {opens} a {closes}."
    return f"Horario fuera del funcionamiento de la clínica ({opens} a {closes})."
