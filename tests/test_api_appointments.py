"""API tests for /appointments against a throwaway SQLite database."""

import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_now, get_scheduling_config
from app.core.db import create_tables, get_db, make_engine, make_sessionmaker
from app.main import app
from app.scheduling.config import DEFAULT_CONFIG, SchedulingConfig
from tests.conftest import NOW, SUNDAY, TUESDAY, at


@pytest.fixture
def client(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'agenda.db'}")
    TestingSession = make_sessionmaker(engine)
    asyncio.run(create_tables(engine))

    async def override_get_db():
        async with TestingSession() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    app.dependency_overrides[get_scheduling_config] = lambda: DEFAULT_CONFIG

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def payload(start: datetime, minutes: int = 60, **extra) -> dict:
    body = {
        "patient_id": "patient-1",
        "therapist_id": "therapist-1",
        "starts_at": start.isoformat(),
        "ends_at": (start + timedelta(minutes=minutes)).isoformat(),
    }
    body.update(extra)
    return body


def create(client, start, **extra) -> list[dict]:
    response = client.post("/appointments/", json=payload(start, **extra))
    assert response.status_code == 201, response.text
    return response.json()


class TestPolicyAndHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_config(self, client):
        data = client.get("/appointments/config").json()

        assert data["minimum_gap_minutes"] == 60
        assert data["max_appointments_per_day"] == 12
        assert data["business_hours"][6] is None


class TestValidateEndpoints:
    def test_quick_validate_sunday(self, client):
        response = client.post("/appointments/quick-validate", json=payload(at(SUNDAY, 10)))

        assert response.status_code == 200
        assert response.json() == {"is_valid": False, "message": "La clínica no atiende los domingos."}

    def test_quick_validate_ok(self, client):
        response = client.post("/appointments/quick-validate", json=payload(at(TUESDAY, 10)))
        assert response.json()["is_valid"] is True

    def test_validate_does_not_persist(self, client):
        """Dry run expands the series and saves nothing."""
        body = payload(at(TUESDAY, 10), recurrence={"type": "weekly", "occurrences": 4})
        response = client.post("/appointments/validate", json=body)
        data = response.json()

        assert response.status_code == 200
        assert data["occurrences"] == 4
        assert data["result"]["is_valid"] is True
        assert data["starts"][1] == "2026-10-27T10:00:00"
        assert client.get("/appointments/").json() == []


class TestCreate:
    def test_single(self, client):
        created = create(client, at(TUESDAY, 10), notes="primera consulta")

        assert len(created) == 1
        assert created[0]["id"]
        assert created[0]["series_id"] is None
        assert created[0]["status"] == "scheduled"
        assert created[0]["notes"] == "primera consulta"

    def test_weekly_series(self, client):
        created = create(client, at(TUESDAY, 10), recurrence={"type": "weekly", "occurrences": 3})

        assert [ap["starts_at"] for ap in created] == [
            "2026-10-20T10:00:00",
            "2026-10-27T10:00:00",
            "2026-11-03T10:00:00",
        ]
        assert len({ap["series_id"] for ap in created}) == 1
        assert created[0]["series_id"] is not None
        assert len(client.get("/appointments/", params={"patient_id": "patient-1"}).json()) == 3

    def test_double_booking_rejected(self, client):
        create(client, at(TUESDAY, 10))
        response = client.post(
            "/appointments/", json=payload(at(TUESDAY, 10, 30), patient_id="patient-2")
        )
        detail = response.json()["detail"]

        assert response.status_code == 400
        assert detail["is_valid"] is False
        assert "Conflicto con otro turno del terapeuta el 20/10 a las 10:00." in detail["errors"]
        assert len(client.get("/appointments/").json()) == 1

    def test_series_with_one_conflict_saves_nothing(self, client):
        create(client, datetime(2026, 11, 3, 10, 30), patient_id="patient-2")
        body = payload(at(TUESDAY, 10), recurrence={"type": "weekly", "occurrences": 4})

        assert client.post("/appointments/", json=body).status_code == 400
        assert len(client.get("/appointments/").json()) == 1

    def test_sunday_rejected(self, client):
        response = client.post("/appointments/", json=payload(at(SUNDAY, 10)))

        assert response.status_code == 400
        assert "La clínica no atiende los domingos." in response.json()["detail"]["errors"]

    def test_end_before_start_is_422(self, client):
        body = payload(at(TUESDAY, 10))
        body["ends_at"] = at(TUESDAY, 9).isoformat()
        assert client.post("/appointments/", json=body).status_code == 422

    def test_invalid_recurrence_rule(self, client):
        body = payload(at(TUESDAY, 10), recurrence={"type": "weekly", "interval": 0})
        response = client.post("/appointments/", json=body)

        assert response.status_code == 400
        assert any("intervalo" in e for e in response.json()["detail"]["errors"])


class TestReadAndList:
    def test_get_one(self, client):
        ap = create(client, at(TUESDAY, 10))[0]
        response = client.get(f"/appointments/{ap['id']}")

        assert response.status_code == 200
        assert response.json()["starts_at"] == "2026-10-20T10:00:00"

    def test_not_found(self, client):
        response = client.get("/appointments/no-existe")

        assert response.status_code == 404
        assert response.json()["detail"] == "Turno no encontrado"

    def test_filters(self, client):
        create(client, at(TUESDAY, 10))
        create(client, at(TUESDAY, 10), therapist_id="therapist-2", patient_id="patient-2")
        create(client, datetime(2026, 10, 21, 10), patient_id="patient-3")

        by_therapist = client.get("/appointments/", params={"therapist_id": "therapist-2"}).json()
        by_range = client.get(
            "/appointments/",
            params={"date_from": "2026-10-21T00:00:00", "date_to": "2026-10-22T00:00:00"},
        ).json()

        assert [ap["patient_id"] for ap in by_therapist] == ["patient-2"]
        assert [ap["patient_id"] for ap in by_range] == ["patient-3"]
        assert client.get("/appointments/", params={"status": "canceled"}).json() == []


class TestUpdate:
    def test_move_into_conflict(self, client):
        create(client, at(TUESDAY, 10))
        other = create(client, at(TUESDAY, 12), patient_id="patient-2")[0]

        response = client.patch(
            f"/appointments/{other['id']}",
            json={"starts_at": at(TUESDAY, 10, 30).isoformat(), "ends_at": at(TUESDAY, 11, 30).isoformat()},
        )
        assert response.status_code == 400
        assert client.get(f"/appointments/{other['id']}").json()["starts_at"] == "2026-10-20T12:00:00"

    def test_notes_only(self, client):
        ap = create(client, at(TUESDAY, 10))[0]
        response = client.patch(f"/appointments/{ap['id']}", json={"notes": "trae estudios"})

        assert response.status_code == 200
        assert response.json()["notes"] == "trae estudios"

    def test_end_before_start(self, client):
        ap = create(client, at(TUESDAY, 10))[0]
        response = client.patch(f"/appointments/{ap['id']}", json={"ends_at": at(TUESDAY, 9).isoformat()})
        assert response.status_code == 400

    def test_moving_an_occurrence_keeps_the_series(self, client):
        series = create(client, at(TUESDAY, 10), recurrence={"type": "weekly", "occurrences": 3})
        second = series[1]

        response = client.patch(
            f"/appointments/{second['id']}",
            json={"starts_at": "2026-10-27T11:00:00", "ends_at": "2026-10-27T12:00:00"},
        )
        assert response.status_code == 200, response.text
        assert response.json()["series_id"] == second["series_id"]

    def test_cancel_frees_the_slot(self, client):
        ap = create(client, at(TUESDAY, 10))[0]
        client.patch(f"/appointments/{ap['id']}", json={"status": "canceled"})

        create(client, at(TUESDAY, 10), patient_id="patient-2")
        response = client.patch(f"/appointments/{ap['id']}", json={"status": "scheduled"})
        assert response.status_code == 400

    def test_retype_past_appointment(self, client):
        """Once the session happened its type can still be corrected."""
        ap = create(client, at(TUESDAY, 10))[0]
        app.dependency_overrides[get_now] = lambda: at(TUESDAY, 18)

        response = client.patch(f"/appointments/{ap['id']}", json={"type": "evaluation"})

        assert response.status_code == 200, response.text
        assert response.json()["type"] == "evaluation"

    def test_retype_to_disabled_teleconsulta(self, client):
        ap = create(client, at(TUESDAY, 10))[0]
        app.dependency_overrides[get_scheduling_config] = lambda: SchedulingConfig(teleconsulta_enabled=False)

        response = client.patch(f"/appointments/{ap['id']}", json={"type": "teleconsulta"})

        assert response.status_code == 400
        assert "La teleconsulta está deshabilitada en la clínica." in response.json()["detail"]["errors"]

    def test_retype_future_appointment_is_revalidated(self, client):
        """A future appointment changing only its type goes through the rules again."""
        ap = create(client, at(TUESDAY, 10))[0]
        create(client, at(TUESDAY, 12), patient_id="patient-2")
        app.dependency_overrides[get_scheduling_config] = lambda: SchedulingConfig(max_appointments_per_day=1)

        response = client.patch(f"/appointments/{ap['id']}", json={"type": "urgent"})
        assert response.status_code == 400


class TestOpenEndedSeries:
    def test_weekly_without_end_is_booked_up_to_the_limit(self, client):
        """No end date nor count: sessions up to 90 days ahead."""
        created = create(client, at(TUESDAY, 10), recurrence={"type": "weekly"})

        assert len(created) == 13
        assert created[-1]["starts_at"] == "2027-01-12T10:00:00"
        assert len({ap["series_id"] for ap in created}) == 1


class TestDelete:
    def test_single(self, client):
        ap = create(client, at(TUESDAY, 10))[0]
        response = client.delete(f"/appointments/{ap['id']}")

        assert response.json() == {"deleted": 1}
        assert client.get(f"/appointments/{ap['id']}").status_code == 404

    def test_single_occurrence_of_series(self, client):
        series = create(client, at(TUESDAY, 10), recurrence={"type": "weekly", "occurrences": 4})
        client.delete(f"/appointments/{series[1]['id']}")
        assert len(client.get("/appointments/").json()) == 3

    def test_this_and_following(self, client):
        series = create(client, at(TUESDAY, 10), recurrence={"type": "weekly", "occurrences": 4})
        response = client.delete(f"/appointments/{series[1]['id']}", params={"scope": "following"})

        assert response.json() == {"deleted": 3}
        remaining = client.get("/appointments/").json()
        assert [ap["id"] for ap in remaining] == [series[0]["id"]]

    def test_series_from_date(self, client):
        series = create(client, at(TUESDAY, 10), recurrence={"type": "weekly", "occurrences": 4})
        series_id = series[0]["series_id"]

        response = client.delete(
            f"/appointments/series/{series_id}", params={"from_date": series[2]["starts_at"]}
        )
        assert response.json() == {"deleted": 2}
        assert len(client.get("/appointments/").json()) == 2

    def test_not_found(self, client):
        assert client.delete("/appointments/no-existe").status_code == 404
