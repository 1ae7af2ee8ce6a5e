"""Shared fixtures for the scheduling engine and API tests."""

import uuid
from datetime import datetime, timedelta

import pytest

from app.scheduling.models import Appointment

# viernes 16/10/2026, 08:00
NOW = datetime(2026, 10, 16, 8, 0)

# semana de referencia
TUESDAY = datetime(2026, 10, 20)
SATURDAY = datetime(2026, 10, 24)
SUNDAY = datetime(2026, 10, 25)


def at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_appt():
    """Factory: make_appt(start, minutes=60, **fields) -> Appointment."""

    def _make(start: datetime, minutes: int = 60, **fields) -> Appointment:
        data = {
            "id": str(uuid.uuid4()),
            "patient_id": "patient-1",
            "therapist_id": "therapist-1",
            "starts_at": start,
            "ends_at": start + timedelta(minutes=minutes),
        }
        data.update(fields)
        return Appointment(**data)

    return _make
