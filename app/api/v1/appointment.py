import logging
from datetime import datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.api.deps import get_now, get_scheduling_config
from app.models.appointment import Appointment
from app.scheduling.config import SchedulingConfig
from app.scheduling.models import (
    ACTIVE_STATUSES,
    Appointment as DraftAppointment,
    AppointmentStatus,
    AppointmentType,
    QuickValidation,
    SeriesValidation,
)
from app.scheduling.rules import quick_validate_appointment, validate_appointment, validate_series
from app.schemas.appointment import (
    AppointmentCreate, AppointmentUpdate, AppointmentOut,
    DeleteScope, DeletedOut, SeriesValidationOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])

# campos que obligan a revalidar un turno editado
_SCHEDULE_FIELDS = {"starts_at", "ends_at", "therapist_id"}

# ---------- helpers ----------
async def _get_appt_or_404(id: str, db: AsyncSession) -> Appointment:
    res = await db.execute(select(Appointment).where(Appointment.id == id))
    ap = res.scalar_one_or_none()
    if not ap:
        raise HTTPException(status_code=404, detail="Turno no encontrado")
    return ap

def _validate_times(starts_at: datetime, ends_at: datetime) -> None:
    if ends_at <= starts_at:
        raise HTTPException(status_code=400, detail="ends_at debe ser posterior a starts_at")

def _to_domain(rows) -> list[DraftAppointment]:
    return [DraftAppointment.model_validate(r) for r in rows]

async def _patient_history(db: AsyncSession, patient_id: str) -> list[DraftAppointment]:
    res = await db.execute(
        select(Appointment)
        .where(Appointment.patient_id == patient_id)
        .order_by(Appointment.starts_at)
    )
    return _to_domain(res.scalars().all())

async def _scheduling_window(db: AsyncSession, therapist_id: str, patient_id: str, since: datetime) -> list[DraftAppointment]:
    # turnos del terapeuta (conflictos / cupo) o del paciente (intervalo) desde el día del borrador
    day_start = datetime.combine(since.date(), time.min)
    res = await db.execute(
        select(Appointment)
        .where(
            or_(Appointment.therapist_id == therapist_id, Appointment.patient_id == patient_id),
            Appointment.starts_at >= day_start,
        )
        .order_by(Appointment.starts_at)
    )
    return _to_domain(res.scalars().all())

async def _validate_draft(
    draft: DraftAppointment,
    db: AsyncSession,
    config: SchedulingConfig,
    now: datetime,
) -> SeriesValidation:
    history = await _patient_history(db, draft.patient_id)
    window = await _scheduling_window(db, draft.therapist_id, draft.patient_id, draft.starts_at)
    return validate_series(draft, history, window, config, now)

# ---------- policy ----------
@router.get("/config", response_model=SchedulingConfig)
async def get_config(config: SchedulingConfig = Depends(get_scheduling_config)):
    return config

# ---------- validate (no persiste) ----------
@router.post("/quick-validate", response_model=QuickValidation)
async def quick_validate(
    payload: AppointmentCreate,
    config: SchedulingConfig = Depends(get_scheduling_config),
    now: datetime = Depends(get_now),
):
    return quick_validate_appointment(payload.to_draft(), config, now)

@router.post("/validate", response_model=SeriesValidationOut)
async def validate(
    payload: AppointmentCreate,
    db: AsyncSession = Depends(get_db),
    config: SchedulingConfig = Depends(get_scheduling_config),
    now: datetime = Depends(get_now),
):
    verdict = await _validate_draft(payload.to_draft(), db, config, now)
    return SeriesValidationOut(
        result=verdict.result,
        occurrences=len(verdict.instances),
        starts=[ap.starts_at for ap in verdict.instances],
    )

# ---------- create ----------
@router.post("/", response_model=list[AppointmentOut], status_code=201)
async def create_appointment(
    payload: AppointmentCreate,
    db: AsyncSession = Depends(get_db),
    config: SchedulingConfig = Depends(get_scheduling_config),
    now: datetime = Depends(get_now),
):
    verdict = await _validate_draft(payload.to_draft(), db, config, now)
    if not verdict.result.is_valid:
        raise HTTPException(status_code=400, detail=verdict.result.model_dump())

    created: list[Appointment] = []
    for instance in verdict.instances:
        data = instance.model_dump(exclude={"recurrence_rule"})
        if data["id"] is None:
            data.pop("id")
        ap = Appointment(**data)
        db.add(ap)
        created.append(ap)
    await db.commit()
    for ap in created:
        await db.refresh(ap)

    logger.info(
        "Creados %d turno(s) para paciente %s con terapeuta %s (serie %s)",
        len(created), payload.patient_id, payload.therapist_id, created[0].series_id,
    )
    return created

# ---------- list ----------
@router.get("/", response_model=list[AppointmentOut])
async def list_appointments(
    therapist_id: str | None = Query(None),
    patient_id: str | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to:   datetime | None = Query(None),
    status:    AppointmentStatus | None = Query(None),
    limit:     int = Query(50, ge=1, le=200),
    offset:    int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    q = select(Appointment)

    if therapist_id:
        q = q.where(Appointment.therapist_id == therapist_id)
    if patient_id:
        q = q.where(Appointment.patient_id == patient_id)
    if date_from:
        q = q.where(Appointment.starts_at >= date_from)
    if date_to:
        q = q.where(Appointment.starts_at < date_to)
    if status:
        q = q.where(Appointment.status == status)

    res = await db.execute(q.order_by(Appointment.starts_at).offset(offset).limit(limit))
    return res.scalars().all()

# ---------- get ----------
@router.get("/{id}", response_model=AppointmentOut)
async def get_appointment(id: str, db: AsyncSession = Depends(get_db)):
    return await _get_appt_or_404(id, db)

# ---------- update ----------
@router.patch("/{id}", response_model=AppointmentOut)
async def update_appointment(
    id: str,
    patch: AppointmentUpdate,
    db: AsyncSession = Depends(get_db),
    config: SchedulingConfig = Depends(get_scheduling_config),
    now: datetime = Depends(get_now),
):
    ap = await _get_appt_or_404(id, db)
    data = patch.model_dump(exclude_unset=True)

    _validate_times(data.get("starts_at", ap.starts_at), data.get("ends_at", ap.ends_at))

    # el series_id no se toca: la edición de una ocurrencia sigue en la serie
    current = DraftAppointment.model_validate(ap).model_dump()
    candidate = DraftAppointment(**{**current, **data})

    reactivated = "status" in data and ap.status not in ACTIVE_STATUSES
    # cambiar el tipo de un turno ya pasado (p. ej. al cerrar la sesión) no revalida,
    # salvo que pase a una teleconsulta deshabilitada
    retyped = "type" in data and (
        candidate.starts_at >= now
        or (candidate.type == AppointmentType.teleconsulta and not config.teleconsulta_enabled)
    )
    if candidate.is_active and (_SCHEDULE_FIELDS & data.keys() or reactivated or retyped):
        history = await _patient_history(db, candidate.patient_id)
        window = await _scheduling_window(db, candidate.therapist_id, candidate.patient_id, candidate.starts_at)
        result = validate_appointment(candidate, history, window, config, now)
        if not result.is_valid:
            raise HTTPException(status_code=400, detail=result.model_dump())

    for k, v in data.items():
        setattr(ap, k, v)
    await db.commit()
    await db.refresh(ap)
    return ap

# ---------- delete ----------
@router.delete("/series/{series_id}", response_model=DeletedOut)
async def delete_series(
    series_id: str,
    from_date: datetime = Query(..., description="Borra las ocurrencias desde esta fecha/hora"),
    db: AsyncSession = Depends(get_db),
):
    res = await db.execute(
        delete(Appointment).where(
            Appointment.series_id == series_id,
            Appointment.starts_at >= from_date,
        )
    )
    await db.commit()
    logger.info("Serie %s: %d turno(s) borrados desde %s", series_id, res.rowcount, from_date)
    return DeletedOut(deleted=res.rowcount)

@router.delete("/{id}", response_model=DeletedOut)
async def delete_appointment(
    id: str,
    scope: DeleteScope = Query("single"),
    db: AsyncSession = Depends(get_db),
):
    ap = await _get_appt_or_404(id, db)

    # "following": esta ocurrencia y las siguientes de la misma serie
    if scope == "following" and ap.series_id:
        stmt = delete(Appointment).where(
            Appointment.series_id == ap.series_id,
            Appointment.starts_at >= ap.starts_at,
        )
    else:
        stmt = delete(Appointment).where(Appointment.id == id)

    res = await db.execute(stmt)
    await db.commit()
    logger.info("Turno %s borrado (%s): %d fila(s)", id, scope, res.rowcount)
    return DeletedOut(deleted=res.rowcount)
