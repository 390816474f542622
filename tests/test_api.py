# tests/test_api.py
"""
Test the HTTP API against an in-memory container.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import INSTRUCTOR_ID, STUDENT_ID, make_booking

from app.container import set_container
from app.main import app

ROUTE_BODY = {
    "departure": {"latitude": 39.9088, "longitude": -105.1172},
    "arrival": {"latitude": 40.4518, "longitude": -105.0113},
    "departure_id": "KBJC",
    "arrival_id": "KFNL",
    "certification_level": "STUDENT_PILOT",
}


@pytest.fixture
def client(container, stores):
    stores.bookings.add(make_booking(hours_ahead=1))
    set_container(container)
    with TestClient(app) as test_client:
        yield test_client
    set_container(None)


class TestHealthRoutes:
    """Tests for /health."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_db_not_used(self, client):
        """The memory backend reports the database as unused."""
        assert client.get("/health/db").json()["database"] == "not_used"

    def test_weather_health(self, client):
        """Breakers start closed; the sweeper runs while the app is up."""
        body = client.get("/health/weather").json()

        assert body["status"] == "ok"
        assert [b["state"] for b in body["breakers"]] == ["CLOSED", "CLOSED"]
        assert body["sweeper_running"] is True


class TestWeatherRoutes:
    """Tests for /weather."""

    def test_current_weather(self, client):
        response = client.get("/weather", params={"lat": 39.9, "lon": -105.1, "cross_validate": True})

        assert response.status_code == 200
        assert response.json()["confidence"] == 100

    def test_both_providers_down(self, client, primary, secondary):
        """Provider failure maps to 503."""
        primary.error = RuntimeError("primary down")
        secondary.error = RuntimeError("secondary down")

        response = client.get("/weather", params={"lat": 10, "lon": 10})

        assert response.status_code == 503

    def test_out_of_range_coordinate(self, client):
        assert client.get("/weather", params={"lat": 95, "lon": 0}).status_code == 422

    def test_validate_route(self, client, primary, secondary):
        """Route validation reports violations per point."""
        primary.set_weather(visibility_miles=3.0)
        secondary.set_weather(visibility_miles=3.0)

        body = client.post("/weather/validate", json=ROUTE_BODY).json()

        assert body["is_valid"] is False
        assert body["violations"][0] == "Departure (KBJC): Visibility 3 mi < 5 mi minimum"


class TestRescheduleRoutes:
    """Tests for /reschedule and /preferences."""

    def test_full_reschedule_flow(self, client):
        """Generate, rank, confirm."""
        generated = client.post("/reschedule/booking-1/generate", json={"actor": INSTRUCTOR_ID})
        assert generated.status_code == 200
        body = generated.json()
        assert body["status"] == "RESCHEDULING"
        assert body["deadline"] == "2025-06-02T12:30:00+00:00"
        option_ids = [o["id"] for o in body["options"]]
        assert len(option_ids) == 3

        listed = client.get("/reschedule/booking-1/options").json()
        assert [o["id"] for o in listed["options"]] == option_ids

        for user_id, ranked in ((STUDENT_ID, option_ids[:2]), (INSTRUCTOR_ID, [option_ids[2]])):
            response = client.post(
                "/preferences/booking-1",
                json={"user_id": user_id, "ranked_option_ids": ranked},
            )
            assert response.status_code == 200

        preferences = client.get("/preferences/booking-1").json()
        assert preferences["both_submitted"] is True
        assert preferences["deadline_text"] == "30 minutes remaining"

        confirmed = client.post("/reschedule/booking-1/confirm")
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"
        assert confirmed.json()["option_id"] == option_ids[2]

    def test_confirm_before_preferences(self, client):
        """Pending preferences map to 409."""
        client.post("/reschedule/booking-1/generate")

        assert client.post("/reschedule/booking-1/confirm").status_code == 409

    def test_unknown_booking(self, client):
        assert client.post("/reschedule/missing/generate").status_code == 404
        assert client.get("/reschedule/missing/options").status_code == 404
        assert client.get("/preferences/missing").status_code == 404

    def test_no_candidate_slot(self, client, primary, secondary):
        """No flyable slot maps to 422."""
        primary.set_weather(visibility_miles=1.0)
        secondary.set_weather(visibility_miles=1.0)

        assert client.post("/reschedule/booking-1/generate").status_code == 422

    def test_invalid_preference(self, client):
        client.post("/reschedule/booking-1/generate")

        response = client.post(
            "/preferences/booking-1",
            json={"user_id": STUDENT_ID, "ranked_option_ids": ["nope"]},
        )

        assert response.status_code == 400


class TestMonitorAndAvailabilityRoutes:
    """Tests for /monitor and /availability."""

    def test_monitor_run(self, client):
        body = client.post("/monitor/run").json()

        assert body["processed"] == 1
        assert body["conflicts"] == 0

    def test_availability(self, client):
        response = client.get(
            f"/availability/{STUDENT_ID}", params={"start": "2025-06-02", "end": "2025-06-03"}
        )

        assert response.status_code == 200
        assert len(response.json()["slots"]) == 2

    def test_availability_reversed_range(self, client):
        response = client.get(
            f"/availability/{STUDENT_ID}", params={"start": "2025-06-03", "end": "2025-06-02"}
        )

        assert response.status_code == 400
