# tests/test_api.py
"""HTTP-level tests: wire format, admin rate configuration and error mapping."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from app.database import get_db
from app.main import app

API = "/api/v1"
WINDOW = {"startTime": "2030-05-06T10:00:00Z", "endTime": "2030-05-06T10:50:00Z"}


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db, seed_pricing):
    return seed_pricing(db)


def booking_body(space_id, **overrides):
    body = {"parkingSpaceId": space_id, "vehiclePlate": "AA123BB", "vehicleType": "CAR",
            "userGroup": "PUBLIC", **WINDOW}
    body.update(overrides)
    return body


class TestQuoteEndpoints:
    def test_booking_quote(self, client, seeded):
        resp = client.post(f"{API}/bookings/quote", json={
            "parkingSpaceId": seeded.space_id, "vehicleType": "CAR", "userGroup": "PUBLIC", **WINDOW,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["currency"] == "ALL"
        assert data["amount"] == 75
        assert "grace" in data["breakdown"]

    def test_pricing_quote_by_lot(self, client, seeded):
        resp = client.post(f"{API}/pricing/quote", json={
            "parkingLotId": seeded.lot_id, "vehicleType": "CAR", "userGroup": "PUBLIC", **WINDOW,
        })
        assert resp.status_code == 200
        assert resp.json()["amount"] == 75

    def test_pricing_quote_needs_a_target(self, client, seeded):
        resp = client.post(f"{API}/pricing/quote", json={"vehicleType": "CAR", "userGroup": "PUBLIC", **WINDOW})
        assert resp.status_code == 422

    def test_no_plan_is_typed_404(self, client, db, seed_pricing):
        bare = seed_pricing(db, with_assignment=False)
        resp = client.post(f"{API}/bookings/quote", json={
            "parkingSpaceId": bare.space_id, "vehicleType": "CAR", "userGroup": "PUBLIC", **WINDOW,
        })
        assert resp.status_code == 404
        assert resp.json()["error"] == "NO_PLAN_FOUND"

    def test_inverted_interval_is_typed_400(self, client, seeded):
        resp = client.post(f"{API}/bookings/quote", json={
            "parkingSpaceId": seeded.space_id, "vehicleType": "CAR", "userGroup": "PUBLIC",
            "startTime": WINDOW["endTime"], "endTime": WINDOW["startTime"],
        })
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_INTERVAL"

    def test_ambiguous_rules_are_typed_422(self, client, db, seed_pricing):
        from decimal import Decimal
        clash = seed_pricing(db, rules=(
            {"price_per_hour": Decimal("100"), "vehicle_type": "CAR"},
            {"price_per_hour": Decimal("90"), "user_group": "PUBLIC"},
        ))
        resp = client.post(f"{API}/bookings/quote", json={
            "parkingSpaceId": clash.space_id, "vehicleType": "CAR", "userGroup": "PUBLIC", **WINDOW,
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == "AMBIGUOUS_RULE_SET"

    def test_unknown_space_is_not_found(self, client, seeded):
        resp = client.post(f"{API}/bookings/quote", json={
            "parkingSpaceId": 9999, "vehicleType": "CAR", "userGroup": "PUBLIC", **WINDOW,
        })
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"


class TestBookingEndpoints:
    def test_create_and_fetch(self, client, seeded):
        resp = client.post(f"{API}/bookings", json=booking_body(seeded.space_id))
        assert resp.status_code == 201
        created = resp.json()
        assert created["totalPrice"] == 75
        assert created["status"] == "UPCOMING"
        assert created["bookingReference"].startswith("BK-")

        fetched = client.get(f"{API}/bookings/{created['id']}").json()
        assert fetched["totalPrice"] == 75

    def test_double_booking_is_409(self, client, seeded):
        assert client.post(f"{API}/bookings", json=booking_body(seeded.space_id)).status_code == 201
        resp = client.post(f"{API}/bookings", json=booking_body(seeded.space_id))
        assert resp.status_code == 409
        assert resp.json()["error"] == "AVAILABILITY_CONFLICT"

    def test_availability(self, client, seeded):
        params = {"spaceId": seeded.space_id, **WINDOW}
        assert client.get(f"{API}/bookings/availability", params=params).json() is True
        client.post(f"{API}/bookings", json=booking_body(seeded.space_id))
        assert client.get(f"{API}/bookings/availability", params=params).json() is False

    def test_list_page_shape(self, client, seeded):
        client.post(f"{API}/bookings", json=booking_body(seeded.space_id))
        page = client.get(f"{API}/bookings", params={"spaceId": seeded.space_id}).json()
        assert page["totalElements"] == 1
        assert page["page"] == 0
        assert page["hasNext"] is False

    def test_unknown_booking_is_404(self, client, seeded):
        resp = client.get(f"{API}/bookings/9999")
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"

    def test_invalid_transition_is_409(self, client, seeded):
        booking_id = client.post(f"{API}/bookings", json=booking_body(seeded.space_id)).json()["id"]
        client.post(f"{API}/bookings/{booking_id}/start")
        resp = client.post(f"{API}/bookings/{booking_id}/cancel")
        assert resp.status_code == 409
        assert resp.json()["error"] == "INVALID_STATUS_TRANSITION"

    def test_list_sort_by_price_ascending(self, client, seeded):
        client.post(f"{API}/bookings", json=booking_body(
            seeded.space_id, startTime="2030-05-06T08:00:00Z", endTime="2030-05-06T10:00:00Z"))
        client.post(f"{API}/bookings", json=booking_body(seeded.space_id))

        page = client.get(f"{API}/bookings", params={"sortBy": "totalPrice", "sortDir": "asc"}).json()

        assert [b["totalPrice"] for b in page["content"]] == [75, 175]

    def test_list_rejects_unknown_sort_field(self, client, seeded):
        assert client.get(f"{API}/bookings", params={"sortBy": "vehiclePlate"}).status_code == 422

    def test_space_and_lot_listings(self, client, seeded):
        client.post(f"{API}/bookings", json=booking_body(seeded.space_id))
        client.post(f"{API}/bookings", json=booking_body(seeded.other_space_id))

        by_space = client.get(f"{API}/admin/bookings/spaces/{seeded.space_id}").json()
        by_lot = client.get(f"{API}/admin/bookings/lots/{seeded.lot_id}", params={"sortBy": "startTime"}).json()

        assert by_space["totalElements"] == 1
        assert by_space["content"][0]["parkingSpaceId"] == seeded.space_id
        assert by_lot["totalElements"] == 2


class TestSessionEndpoints:
    def test_start_and_stop(self, client, seeded):
        resp = client.post(f"{API}/parking-sessions", json={
            "parkingSpaceId": seeded.space_id, "vehiclePlate": "AA123BB", "vehicleType": "CAR",
            "userGroup": "PUBLIC", "startedAt": WINDOW["startTime"],
        })
        assert resp.status_code == 201
        session_id = resp.json()["id"]

        stopped = client.post(f"{API}/parking-sessions/{session_id}/stop", json={"endTime": WINDOW["endTime"]})
        assert stopped.status_code == 200
        assert stopped.json()["billedAmount"] == 75
        assert stopped.json()["status"] == "COMPLETED"

    def test_space_and_lot_listings(self, client, seeded):
        for space_id in (seeded.space_id, seeded.other_space_id):
            client.post(f"{API}/parking-sessions", json={
                "parkingSpaceId": space_id, "vehiclePlate": "AA123BB", "vehicleType": "CAR",
                "userGroup": "PUBLIC", "startedAt": WINDOW["startTime"],
            })

        by_space = client.get(f"{API}/admin/parking-sessions/spaces/{seeded.other_space_id}").json()
        by_lot = client.get(f"{API}/admin/parking-sessions/lots/{seeded.lot_id}",
                            params={"sortBy": "startedAt", "sortDir": "asc"}).json()

        assert by_space["totalElements"] == 1
        assert by_space["content"][0]["parkingSpaceId"] == seeded.other_space_id
        assert by_lot["totalElements"] == 2


class TestRateAdmin:
    def test_configure_plan_end_to_end(self, client, db, seed_pricing):
        bare = seed_pricing(db, with_assignment=False)

        plan = client.post(f"{API}/admin/rates/plans", json={
            "name": "Flat", "type": "FLAT_PER_ENTRY", "currency": "all", "timeZone": "Europe/Tirane",
        })
        assert plan.status_code == 201
        plan_id = plan.json()["id"]
        assert plan.json()["currency"] == "ALL"

        rule = client.post(f"{API}/admin/rates/rules", json={"ratePlanId": plan_id, "priceFlat": 200})
        assert rule.status_code == 201

        override = client.post(f"{API}/admin/rates/space-overrides", json={
            "parkingSpaceId": bare.space_id, "ratePlanId": plan_id,
        })
        assert override.status_code == 201

        quote = client.post(f"{API}/bookings/quote", json={
            "parkingSpaceId": bare.space_id, "vehicleType": "CAR", "userGroup": "PUBLIC", **WINDOW,
        })
        assert quote.json()["amount"] == 200

        assert client.delete(f"{API}/admin/rates/plans/{plan_id}").status_code == 409

    def test_active_plans(self, client, seeded):
        plans = client.get(f"{API}/admin/rates/plans/active").json()
        assert [p["id"] for p in plans] == [seeded.plan_id]
        assert plans[0]["incrementMinutes"] == 15

    @pytest.mark.parametrize("payload", [
        {"ratePlanId": 1},
        {"ratePlanId": 1, "pricePerHour": 100, "priceFlat": 200},
        {"ratePlanId": 1, "pricePerHour": 100, "startTime": "08:00"},
        {"ratePlanId": 1, "pricePerHour": 100, "startTime": "08:00", "endTime": "08:00"},
        {"ratePlanId": 1, "pricePerHour": 100, "startTime": "8h", "endTime": "18:00"},
        {"ratePlanId": 1, "pricePerHour": -1},
    ])
    def test_invalid_rules_rejected(self, client, seeded, payload):
        assert client.post(f"{API}/admin/rates/rules", json=payload).status_code == 422

    @pytest.mark.parametrize("payload", [
        {"name": "x", "type": "PER_HOUR", "incrementMinutes": 0},
        {"name": "x", "type": "FREE", "timeZone": "Mars/Olympus"},
        {"name": "x", "type": "FREE", "currency": "12"},
    ])
    def test_invalid_plans_rejected(self, client, payload):
        assert client.post(f"{API}/admin/rates/plans", json=payload).status_code == 422

    def test_unknown_plan_is_404(self, client):
        assert client.get(f"{API}/admin/rates/plans/4040").status_code == 404


class TestHealth:
    def test_health(self, client):
        data = client.get(f"{API}/health").json()
        assert data["database"] == "ok"
        assert data["status"] == "ok"


class TestErrorHandler:
    @pytest.mark.asyncio
    async def test_retryable_error_sets_retry_after(self):
        import json
        from unittest.mock import MagicMock
        from app.main import pricing_exception_handler
        from app.services.pricing_errors import Unavailable

        request = MagicMock()
        request.url.path = "/api/v1/bookings/quote"
        resp = await pricing_exception_handler(request, Unavailable("catalog timed out"))

        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "1"
        assert json.loads(resp.body) == {"detail": "catalog timed out", "error": "UNAVAILABLE", "retryable": True}

    @pytest.mark.asyncio
    async def test_non_retryable_error_has_no_retry_after(self):
        from unittest.mock import MagicMock
        from app.main import pricing_exception_handler
        from app.services.pricing_errors import NoMatchingRule

        request = MagicMock()
        request.url.path = "/api/v1/pricing/quote"
        resp = await pricing_exception_handler(request, NoMatchingRule("no rule"))

        assert resp.status_code == 422
        assert "retry-after" not in resp.headers
