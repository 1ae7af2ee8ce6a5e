# app/scheduling/recurrence.py
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from app.scheduling.models import Appointment, RecurrenceRule, RecurrenceType

# techo para reglas sin fecha de fin ni cantidad: lo primero que se cumpla
MAX_RECURRENCE_OCCURRENCES = 365
MAX_RECURRENCE_HORIZON = relativedelta(years=2)


class InvalidRecurrenceRule(ValueError):
    def __init__(self, problems: list[str]):
        super().__init__("; ".join(problems))
        self.problems = problems


def _new_id() -> str:
    return str(uuid.uuid4())


def occurrence_offset(rule: RecurrenceRule, k: int) -> relativedelta:
    # siempre desde la semilla: 31/01 -> 28/02 -> 31/03, el día recortado no se arrastra
    n = rule.interval * k
    if rule.type == RecurrenceType.daily:
        return relativedelta(days=n)
    if rule.type == RecurrenceType.weekly:
        return relativedelta(weeks=n)
    if rule.type == RecurrenceType.biweekly:
        # el intervalo cuenta quincenas: interval=2 => cada 4 semanas
        return relativedelta(weeks=n * 2)
    return relativedelta(months=n)


def recurrence_rule_errors(base: Appointment) -> list[str]:
    rule = base.recurrence_rule
    if rule is None:
        return []

    problems: list[str] = []
    if rule.interval <= 0:
        problems.append("El intervalo de la recurrencia debe ser un entero positivo.")
    if rule.end_date is not None and rule.occurrences is not None:
        problems.append("La recurrencia no puede tener fecha de fin y cantidad de sesiones a la vez.")
    if rule.occurrences is not None:
        if rule.occurrences <= 0:
            problems.append("La cantidad de sesiones de la recurrencia debe ser mayor a cero.")
        elif rule.occurrences > MAX_RECURRENCE_OCCURRENCES:
            problems.append(
                f"La recurrencia no puede generar más de {MAX_RECURRENCE_OCCURRENCES} turnos."
            )
    if rule.end_date is not None and rule.end_date < base.starts_at.date():
        problems.append("La fecha de fin de la recurrencia es anterior al primer turno.")
    return problems


def generate_recurrences(
    base: Appointment,
    id_factory: Optional[Callable[[], str]] = None,
    until: Optional[datetime] = None,
) -> list[Appointment]:
    """
    Expande un turno con regla de recurrencia en la serie completa.

    Cada instancia es una copia del turno base con fechas corridas, id nuevo
    y un series_id común (se reutiliza el del base si ya lo tiene). La
    primera instancia siempre se emite. Sin regla devuelve [base].

    `until` corta las reglas sin fin (ni fecha ni cantidad) antes del techo
    de dos años: el orquestador pasa el límite de anticipación de la clínica.
    """
    rule = base.recurrence_rule
    if rule is None:
        return [base]

    problems = recurrence_rule_errors(base)
    if problems:
        raise InvalidRecurrenceRule(problems)

    make_id = id_factory or _new_id
    series_id = base.series_id or make_id()
    horizon = base.starts_at + MAX_RECURRENCE_HORIZON
    if until is not None:
        horizon = min(horizon, until)
    unbounded = rule.end_date is None and rule.occurrences is None
    limit = rule.occurrences or MAX_RECURRENCE_OCCURRENCES

    instances: list[Appointment] = []
    k = 0
    while len(instances) < limit:
        delta = occurrence_offset(rule, k)
        starts_at = base.starts_at + delta
        if k > 0:
            if rule.end_date is not None and starts_at.date() > rule.end_date:
                break
            if unbounded and starts_at > horizon:
                break
        instances.append(
            base.model_copy(
                update={
                    "id": make_id(),
                    "series_id": series_id,
                    "starts_at": starts_at,
                    "ends_at": base.ends_at + delta,
                }
            )
        )
        k += 1
    return instances
