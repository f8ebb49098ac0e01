"""
Integration tests for booking and payment HTTP routes.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Callable
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from booking_engine.errors import PaymentGatewayError
from booking_engine.main import app

CHECK_IN = date(2030, 6, 1)
ADMIN_HEADERS = {"X-Actor-Id": "admin-1", "X-Actor-Role": "ADMIN"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def booking_request(unit_id: str, **overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "unit_id": unit_id,
        "check_in": CHECK_IN.isoformat(),
        "check_out": (CHECK_IN + timedelta(days=2)).isoformat(),
        "adults": 2,
        "guest_name": "Maria Santos",
        "guest_mobile": "09171234567",
        "guest_email": "maria@example.com",
    }
    body.update(overrides)
    return body


@pytest.mark.integration
def test_create_booking_returns_quote(
    client: TestClient, engine: Engine, unit: dict[str, Any]
) -> None:
    response = client.post("/bookings", json=booking_request(unit["id"]))

    assert response.status_code == 201
    data = response.json()
    assert data["total_price"] == 700000
    assert data["down_payment"] == 350000
    assert data["balance"] == 350000
    assert data["nights"] == 2

    tracked = client.get(f"/bookings/{data['booking_id']}").json()
    assert tracked["status"] == "PENDING"
    assert tracked["payment_status"] == "UNPAID"
    assert tracked["guest_name"] == "Maria Santos"


@pytest.mark.integration
def test_create_booking_rejects_invalid_mobile(
    client: TestClient, engine: Engine, unit: dict[str, Any]
) -> None:
    response = client.post("/bookings", json=booking_request(unit["id"], guest_mobile="12345"))

    assert response.status_code == 422
    assert "valid mobile number" in response.json()["detail"]


@pytest.mark.integration
def test_create_booking_rejects_inverted_dates(
    client: TestClient, engine: Engine, unit: dict[str, Any]
) -> None:
    response = client.post(
        "/bookings",
        json=booking_request(unit["id"], check_out=(CHECK_IN - timedelta(days=1)).isoformat()),
    )

    assert response.status_code == 422


@pytest.mark.integration
def test_walk_in_booking_requires_admin(
    client: TestClient, engine: Engine, unit: dict[str, Any]
) -> None:
    body = booking_request(
        unit["id"], guest_mobile=None, guest_name=None, walk_in_guest_name="Walk In Guest"
    )

    anonymous = client.post("/bookings", json=body)
    as_admin = client.post("/bookings", json=body, headers=ADMIN_HEADERS)

    assert anonymous.status_code == 403
    assert as_admin.status_code == 201


@pytest.mark.integration
def test_unknown_role_header_is_rejected(
    client: TestClient, engine: Engine, unit: dict[str, Any]
) -> None:
    response = client.post(
        "/bookings", json=booking_request(unit["id"]), headers={"X-Actor-Role": "SYSTEM"}
    )

    assert response.status_code == 400


@pytest.mark.integration
def test_track_unknown_booking_returns_404(client: TestClient, engine: Engine) -> None:
    assert client.get("/bookings/missing").status_code == 404


@pytest.mark.integration
def test_admin_confirm_then_repeat_is_noop(
    client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    booking_id = make_booking()

    first = client.post(f"/bookings/{booking_id}/confirm", json={}, headers=ADMIN_HEADERS)
    second = client.post(f"/bookings/{booking_id}/confirm", json={}, headers=ADMIN_HEADERS)

    assert first.status_code == 200
    assert first.json() == {"booking_id": booking_id, "status": "CONFIRMED", "changed": True}
    assert second.json()["changed"] is False


@pytest.mark.integration
def test_confirm_requires_admin(
    client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    booking_id = make_booking()

    response = client.post(
        f"/bookings/{booking_id}/confirm",
        json={},
        headers={"X-Actor-Id": "agent-1", "X-Actor-Role": "AGENT"},
    )

    assert response.status_code == 403
    assert client.get(f"/bookings/{booking_id}").json()["status"] == "PENDING"


@pytest.mark.integration
def test_cancel_and_complete_routes(
    client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    cancelled_id = make_booking()
    completed_id = make_booking()

    cancelled = client.post(
        f"/bookings/{cancelled_id}/cancel", json={"reason": "Guest request"}, headers=ADMIN_HEADERS
    )
    client.post(f"/bookings/{completed_id}/confirm", json={}, headers=ADMIN_HEADERS)
    completed = client.post(f"/bookings/{completed_id}/complete", headers=ADMIN_HEADERS)
    too_early = client.post(f"/bookings/{cancelled_id}/complete", headers=ADMIN_HEADERS)

    assert cancelled.json()["status"] == "CANCELLED"
    assert completed.json() == {"booking_id": completed_id, "status": "COMPLETED", "changed": True}
    assert too_early.json()["changed"] is False
    assert too_early.json()["status"] == "CANCELLED"


@pytest.mark.integration
def test_cancel_requires_reason(
    client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    booking_id = make_booking()

    response = client.post(f"/bookings/{booking_id}/cancel", json={}, headers=ADMIN_HEADERS)

    assert response.status_code == 422


@pytest.mark.integration
def test_payment_proof_is_accepted_for_review(
    client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    booking_id = make_booking()

    response = client.post(
        f"/bookings/{booking_id}/payment-proof", json={"reference_number": "GCASH-0001"}
    )

    assert response.status_code == 202
    assert client.get(f"/payments/{booking_id}/status").json() == {"status": "pending"}


@pytest.mark.integration
def test_payment_status_route(
    client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    booking_id = make_booking()
    client.post(f"/bookings/{booking_id}/confirm", json={}, headers=ADMIN_HEADERS)

    assert client.get(f"/payments/{booking_id}/status").json() == {"status": "confirmed"}
    assert client.get("/payments/missing/status").status_code == 404


@pytest.mark.integration
@patch("booking_engine.services.payments.create_checkout_session")
def test_checkout_route_returns_url(
    mock_create: MagicMock, client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    mock_create.return_value = ("cs_route", "https://checkout.example/cs_route")
    booking_id = make_booking()

    response = client.post(f"/payments/{booking_id}/checkout")

    assert response.status_code == 200
    assert response.json() == {
        "booking_id": booking_id,
        "checkout_url": "https://checkout.example/cs_route",
    }


@pytest.mark.integration
@patch("booking_engine.services.payments.create_checkout_session")
def test_checkout_gateway_failure_returns_502(
    mock_create: MagicMock, client: TestClient, engine: Engine, make_booking: Callable[..., str]
) -> None:
    mock_create.side_effect = PaymentGatewayError("PayMongo unavailable")
    booking_id = make_booking()

    response = client.post(f"/payments/{booking_id}/checkout")

    assert response.status_code == 502


@pytest.mark.integration
@patch("booking_engine.services.payments.get_checkout_session")
@patch("booking_engine.services.payments.create_checkout_session")
def test_verify_route_confirms_paid_session(
    mock_create: MagicMock,
    mock_get: MagicMock,
    client: TestClient,
    engine: Engine,
    make_booking: Callable[..., str],
) -> None:
    mock_create.return_value = ("cs_route", "https://checkout.example/cs_route")
    mock_get.return_value = {"payment_intent": {"attributes": {"status": "succeeded"}}}
    booking_id = make_booking()
    client.post(f"/payments/{booking_id}/checkout")

    response = client.post(f"/payments/{booking_id}/verify")

    assert response.json() == {"status": "confirmed"}
    assert client.get(f"/bookings/{booking_id}").json()["payment_status"] == "PARTIAL"
