# app/scheduling/rules.py
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, time, timedelta
from typing import Optional

from app.scheduling.business_hours import (
    fmt_minute,
    is_within_business_hours,
    outside_hours_message,
)
from app.scheduling.config import DEFAULT_CONFIG, SATURDAY, SchedulingConfig
from app.scheduling.conflicts import (
    find_conflict,
    has_minimum_gap_between_appointments,
    is_under_daily_appointment_limit,
)
from app.scheduling.models import (
    DRAFT_ID,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    PaymentStatus,
    QuickValidation,
    SeriesValidation,
    ValidationResult,
)
from app.scheduling.recurrence import generate_recurrences, recurrence_rule_errors

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=30)
HIGH_FREQUENCY_SESSIONS = 8
MORNING_HOUR = 9
END_OF_DAY_HOUR = 17


def _hydrate(candidate: Appointment) -> Appointment:
    if candidate.id is None:
        return candidate.model_copy(update={"id": DRAFT_ID})
    return candidate


def _others(appointments: Iterable[Appointment], *exclude_ids: Optional[str]) -> list[Appointment]:
    skip = {i for i in exclude_ids if i is not None}
    return [ap for ap in appointments if ap.id is None or ap.id not in skip]


def _merge(*groups: Iterable[Appointment]) -> list[Appointment]:
    seen: set[str] = set()
    merged: list[Appointment] = []
    for group in groups:
        for ap in group:
            if ap.id is not None:
                if ap.id in seen:
                    continue
                seen.add(ap.id)
            merged.append(ap)
    return merged


def _day_month(moment: datetime) -> str:
    return moment.strftime("%d/%m")


def _hour_minute(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def _conflict_message(conflict: Appointment) -> str:
    return (
        f"Conflicto con otro turno del terapeuta el {_day_month(conflict.starts_at)} "
        f"a las {_hour_minute(conflict.starts_at)}."
    )


# ---------- errores (bloqueantes) ----------
def _blocking_errors(
    candidate: Appointment,
    all_appointments: Sequence[Appointment],
    config: SchedulingConfig,
    now: datetime,
) -> list[str]:
    errors: list[str] = []

    if candidate.starts_at < now:
        errors.append("No es posible agendar en una fecha/hora pasada.")

    if config.require_business_hours and not is_within_business_hours(candidate, config):
        errors.append(outside_hours_message(candidate, config))

    if candidate.starts_at > now + timedelta(days=config.max_advance_booking_days):
        errors.append(
            f"No es posible agendar con más de {config.max_advance_booking_days} días de anticipación."
        )

    if not is_under_daily_appointment_limit(
        candidate.therapist_id,
        candidate.starts_at,
        all_appointments,
        config.max_appointments_per_day,
        ignore_id=candidate.id,
    ):
        errors.append(
            f"El terapeuta ya alcanzó el límite de {config.max_appointments_per_day} turnos por día."
        )

    if candidate.type == AppointmentType.teleconsulta and not config.teleconsulta_enabled:
        errors.append("La teleconsulta está deshabilitada en la clínica.")

    return errors


# ---------- avisos y sugerencias ----------
def _collect_advisories(
    candidate: Appointment,
    history: list[Appointment],
    all_appointments: Sequence[Appointment],
    config: SchedulingConfig,
    now: datetime,
    result: ValidationResult,
) -> None:
    starts_at = candidate.starts_at

    if not has_minimum_gap_between_appointments(
        candidate, _merge(all_appointments, history), config.minimum_gap_minutes
    ):
        result.warnings.append(
            f"Se recomienda un intervalo mínimo de {config.minimum_gap_minutes} minutos "
            "entre sesiones del mismo paciente."
        )

    scheduled = [ap for ap in history if ap.status == AppointmentStatus.scheduled]

    if any(ap.starts_at.date() == starts_at.date() for ap in scheduled):
        result.warnings.append(
            "El paciente ya tiene otro turno el mismo día. Verificá si es necesario."
        )

    today = datetime.combine(now.date(), time.min)
    upcoming = sorted((ap for ap in scheduled if ap.starts_at >= today), key=lambda ap: ap.starts_at)
    if upcoming:
        nxt = upcoming[0].starts_at
        result.warnings.append(
            f"El paciente ya tiene un turno futuro agendado para el {_day_month(nxt)} "
            f"a las {_hour_minute(nxt)}."
        )

    if any(ap.payment_status == PaymentStatus.pending for ap in history):
        result.warnings.append(
            "Recordatorio: el paciente tiene pagos pendientes. Revisá la sección financiera."
        )

    if candidate.session_number and candidate.total_sessions and candidate.session_number == candidate.total_sessions:
        result.suggestions.append(
            "Es la última sesión del paquete. Recordá conversar con el paciente la renovación del tratamiento."
        )

    if not history:
        result.suggestions.append(
            'Primer turno del paciente. Se recomienda definir el tipo como "Evaluación".'
        )

    if starts_at.hour < MORNING_HOUR:
        result.suggestions.append(
            "Turno temprano: ideal para pacientes que prefieren horarios de mañana."
        )
    elif starts_at.hour >= END_OF_DAY_HOUR:
        result.suggestions.append(
            "Turno al final del día: verificá que quede tiempo para limpieza y orden."
        )

    if starts_at.weekday() == SATURDAY:
        window = config.window_for(SATURDAY)
        hours = f" ({fmt_minute(window[0])} a {fmt_minute(window[1])})" if window else ""
        result.suggestions.append(f"Turno de sábado: recordá que el horario es reducido{hours}.")

    recent = [ap for ap in history if timedelta(0) <= starts_at - ap.starts_at <= RECENT_WINDOW]
    if len(recent) >= HIGH_FREQUENCY_SESSIONS:
        result.suggestions.append(
            "Paciente con alta frecuencia de sesiones. Considerá evaluar la evolución del tratamiento."
        )
    elif not recent and history:
        last = max(history, key=lambda ap: ap.starts_at)
        days_since = (starts_at - last.starts_at) // timedelta(days=1)
        if days_since > RECENT_WINDOW.days:
            result.suggestions.append(
                f"Paciente que vuelve después de {days_since} días. Considerá una reevaluación."
            )

    if candidate.type == AppointmentType.evaluation and history:
        result.suggestions.append(
            "Nueva evaluación para un paciente con historial. "
            "Verificá si es una reevaluación o un cambio de tratamiento."
        )


def validate_appointment(
    candidate: Appointment,
    patient_appointments: Sequence[Appointment],
    all_appointments: Sequence[Appointment] = (),
    config: SchedulingConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """
    Valida un turno contra la política de la clínica y el historial.

    Nunca corta en el primer problema: junta todos los errores (bloqueantes),
    avisos y sugerencias. El id del candidato se excluye de los historiales,
    así sirve tanto para turnos nuevos como para ediciones.
    """
    now = now or datetime.now()
    candidate = _hydrate(candidate)
    history = _others(patient_appointments, candidate.id)

    result = ValidationResult()
    result.errors.extend(_blocking_errors(candidate, all_appointments, config, now))

    conflict = find_conflict([candidate], all_appointments)
    if conflict is not None:
        result.errors.append(_conflict_message(conflict))

    _collect_advisories(candidate, history, all_appointments, config, now, result)

    logger.debug(
        "Turno %s validado: %d errores, %d avisos, %d sugerencias",
        candidate.id, len(result.errors), len(result.warnings), len(result.suggestions),
    )
    return result


def quick_validate_appointment(
    candidate: Appointment,
    config: SchedulingConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> QuickValidation:
    """Chequeo rápido (pasado + horario) para el formulario, sin historial."""
    now = now or datetime.now()
    if candidate.starts_at < now:
        return QuickValidation(is_valid=False, message="No es posible agendar en el pasado.")
    if config.require_business_hours and not is_within_business_hours(candidate, config):
        return QuickValidation(is_valid=False, message=outside_hours_message(candidate, config))
    return QuickValidation(is_valid=True)


def validate_series(
    draft: Appointment,
    patient_appointments: Sequence[Appointment],
    all_appointments: Sequence[Appointment] = (),
    config: SchedulingConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
    ignore_id: Optional[str] = None,
) -> SeriesValidation:
    """
    Expande el borrador (si es recurrente) y valida la serie entera.

    La primera instancia pasa por la validación completa; las siguientes solo
    por los chequeos bloqueantes, contando el cupo diario con las hermanas ya
    generadas. Un solo conflicto en cualquier instancia bloquea toda la serie.
    `ignore_id` es el turno que se está editando.
    """
    now = now or datetime.now()

    problems = recurrence_rule_errors(draft)
    if problems:
        logger.info("Regla de recurrencia inválida para paciente %s: %s", draft.patient_id, problems)
        return SeriesValidation(result=ValidationResult(errors=problems))

    # una serie sin fin se agenda hasta donde la clínica permite anticipar
    booking_limit = now + timedelta(days=config.max_advance_booking_days)
    instances = generate_recurrences(draft, until=booking_limit)
    checked = [_hydrate(ap) for ap in instances]
    pool = _others(all_appointments, ignore_id)
    first = checked[0]
    history = _others(patient_appointments, ignore_id, first.id)

    result = ValidationResult()
    result.errors.extend(_blocking_errors(first, pool, config, now))
    _collect_advisories(first, history, pool, config, now, result)

    for position, instance in enumerate(checked[1:], start=2):
        siblings = checked[: position - 1]
        label = instance.starts_at.strftime("%d/%m/%Y %H:%M")
        for message in _blocking_errors(instance, [*pool, *siblings], config, now):
            result.errors.append(f"Turno {position} ({label}): {message}")

    conflict = find_conflict(checked, pool, ignore_id)
    if conflict is not None:
        result.errors.append(_conflict_message(conflict))

    logger.debug(
        "Serie %s validada: %d turnos, %d errores",
        first.series_id, len(checked), len(result.errors),
    )
    return SeriesValidation(instances=instances, result=result)
