"""
Integration tests for commission ledger and claim routes.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from booking_engine.main import app
from booking_engine.models.users import UserRole
from booking_engine.services.bookings import cancel_booking, confirm_booking


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def headers_for(user: dict[str, Any]) -> dict[str, str]:
    return {"X-Actor-Id": user["id"], "X-Actor-Role": user["role"]}


@pytest.fixture
def pending_commission(
    engine: Engine, make_booking: Callable[..., str], agent: dict[str, Any]
) -> str:
    booking_id = make_booking(agent_id=agent["id"])
    result = confirm_booking(engine, booking_id, "manual")
    assert result.commission_id is not None
    return result.commission_id


@pytest.mark.integration
def test_admin_sees_full_ledger_agent_sees_own(
    client: TestClient,
    admin: dict[str, Any],
    agent: dict[str, Any],
    make_user: Callable[..., Any],
    pending_commission: str,
) -> None:
    other_agent = make_user(UserRole.AGENT, name="Other Agent", commission_rate=0.05)

    as_admin = client.get("/commissions", headers=headers_for(admin))
    as_agent = client.get("/commissions", headers=headers_for(agent))
    as_other = client.get("/commissions", headers=headers_for(other_agent))

    assert [row["id"] for row in as_admin.json()] == [pending_commission]
    assert as_agent.json()[0]["amount"] == 70000
    assert as_agent.json()[0]["status"] == "PENDING"
    assert as_other.json() == []


@pytest.mark.integration
def test_clients_cannot_list_commissions(client: TestClient, engine: Engine) -> None:
    assert client.get("/commissions").status_code == 403


@pytest.mark.integration
def test_pay_out_then_second_settlement_conflicts(
    client: TestClient, admin: dict[str, Any], pending_commission: str
) -> None:
    paid = client.post(f"/commissions/{pending_commission}/pay", headers=headers_for(admin))
    rejected = client.post(f"/commissions/{pending_commission}/reject", headers=headers_for(admin))

    assert paid.status_code == 200
    assert paid.json() == {"id": pending_commission, "status": "PAID_OUT"}
    assert rejected.status_code == 409


@pytest.mark.integration
def test_reject_commission(
    client: TestClient, admin: dict[str, Any], pending_commission: str
) -> None:
    response = client.post(f"/commissions/{pending_commission}/reject", headers=headers_for(admin))

    assert response.json() == {"id": pending_commission, "status": "REJECTED"}


@pytest.mark.integration
def test_agents_cannot_settle(
    client: TestClient, agent: dict[str, Any], pending_commission: str
) -> None:
    response = client.post(f"/commissions/{pending_commission}/pay", headers=headers_for(agent))

    assert response.status_code == 403


@pytest.mark.integration
def test_settling_unknown_commission_returns_404(
    client: TestClient, engine: Engine, admin: dict[str, Any]
) -> None:
    response = client.post("/commissions/missing/pay", headers=headers_for(admin))

    assert response.status_code == 404


@pytest.mark.integration
def test_agent_searches_and_claims_orphan_booking(
    client: TestClient,
    engine: Engine,
    make_booking: Callable[..., str],
    agent: dict[str, Any],
) -> None:
    booking_id = make_booking(guest_name="Rosa Villanueva")
    confirm_booking(engine, booking_id, "manual")

    search = client.get("/claims/search", params={"guest_name": "villa"}, headers=headers_for(agent))
    claim = client.post(f"/claims/{booking_id}", headers=headers_for(agent))
    again = client.post(f"/claims/{booking_id}", headers=headers_for(agent))

    assert [row["id"] for row in search.json()] == [booking_id]
    assert search.json()[0]["unit_name"] == "Pine Cabin"
    assert claim.status_code == 201
    assert claim.json()["booking_id"] == booking_id
    assert claim.json()["amount"] == 70000
    assert claim.json()["commission_id"] is not None
    assert again.status_code == 409


@pytest.mark.integration
def test_claim_search_requires_two_characters(
    client: TestClient, engine: Engine, agent: dict[str, Any]
) -> None:
    response = client.get("/claims/search", params={"guest_name": "a"}, headers=headers_for(agent))

    assert response.status_code == 422


@pytest.mark.integration
def test_pending_booking_claim_has_no_commission_yet(
    client: TestClient,
    engine: Engine,
    make_booking: Callable[..., str],
    agent: dict[str, Any],
) -> None:
    booking_id = make_booking()

    response = client.post(f"/claims/{booking_id}", headers=headers_for(agent))
    confirmed = confirm_booking(engine, booking_id, "manual")
    ledger = client.get("/commissions", headers=headers_for(agent))

    assert response.status_code == 201
    assert response.json() == {
        "booking_id": booking_id,
        "status": "PENDING",
        "commission_id": None,
        "amount": None,
    }
    assert [row["id"] for row in ledger.json()] == [confirmed.commission_id]


@pytest.mark.integration
def test_cancelled_booking_cannot_be_claimed_over_http(
    client: TestClient,
    engine: Engine,
    make_booking: Callable[..., str],
    agent: dict[str, Any],
) -> None:
    booking_id = make_booking()
    cancel_booking(engine, booking_id, "expired")

    response = client.post(f"/claims/{booking_id}", headers=headers_for(agent))

    assert response.status_code == 409
    assert response.json()["detail"] == "Cancelled bookings cannot be claimed."
