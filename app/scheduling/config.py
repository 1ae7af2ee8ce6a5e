# app/scheduling/config.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

# (apertura, cierre) en minutos desde medianoche
BusinessWindow = tuple[int, int]

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)

# indexado por datetime.weekday(): lunes = 0 ... domingo = 6
DEFAULT_BUSINESS_HOURS: tuple[Optional[BusinessWindow], ...] = (
    (7 * 60, 19 * 60),
    (7 * 60, 19 * 60),
    (7 * 60, 19 * 60),
    (7 * 60, 19 * 60),
    (7 * 60, 19 * 60),
    (8 * 60, 14 * 60),
    None,
)


class SchedulingConfig(BaseModel):
    """Política de agenda de la clínica. Inmutable: se pasa en cada validación."""

    model_config = ConfigDict(frozen=True)

    minimum_gap_minutes: int = 60
    max_appointments_per_day: int = 12
    require_business_hours: bool = True
    max_advance_booking_days: int = 90
    allow_weekend_appointments: bool = True
    teleconsulta_enabled: bool = True
    business_hours: tuple[Optional[BusinessWindow], ...] = DEFAULT_BUSINESS_HOURS

    @field_validator("business_hours")
    @classmethod
    def _seven_days(cls, v):
        if len(v) != 7:
            raise ValueError("business_hours debe tener 7 entradas (lunes a domingo)")
        for window in v:
            if window is not None and not (0 <= window[0] < window[1] <= 24 * 60):
                raise ValueError(f"Franja horaria inválida: {window}")
        return v

    def window_for(self, weekday: int) -> Optional[BusinessWindow]:
        if not self.allow_weekend_appointments and weekday in (SATURDAY, SUNDAY):
            return None
        return self.business_hours[weekday]


DEFAULT_CONFIG = SchedulingConfig()
