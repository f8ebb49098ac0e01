"""
Integration tests for the PayMongo webhook receiver.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.engine import Engine

from booking_engine.main import app
from booking_engine.models.commissions import Commission
from booking_engine.services.payments import payment_status
from booking_engine.services.webhook_signature import compute_signature

SECRET = "whsk_test_secret"


def paid_body(booking_id: str, event_id: str = "evt_route") -> bytes:
    return json.dumps(
        {
            "data": {
                "id": event_id,
                "attributes": {
                    "type": "checkout_session.payment.paid",
                    "data": {"attributes": {"metadata": {"booking_id": booking_id}}},
                },
            }
        }
    ).encode("utf-8")


def signed_headers(body: bytes, key: str = "te") -> dict[str, str]:
    timestamp = str(int(time.time()))
    signature = compute_signature(SECRET, timestamp, body)
    return {"paymongo-signature": f"t={timestamp},{key}={signature}", "content-type": "application/json"}


async def post_webhook(body: bytes, headers: dict[str, str]) -> Any:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/webhooks/paymongo", content=body, headers=headers)


@pytest.fixture
def webhook_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr("booking_engine.routes.webhook.PAYMONGO_WEBHOOK_SECRET", SECRET)
    return SECRET


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signed_delivery_confirms_booking(
    engine: Engine, make_booking: Callable[..., str], webhook_secret: str
) -> None:
    booking_id = make_booking()
    body = paid_body(booking_id)

    response = await post_webhook(body, signed_headers(body))

    assert response.status_code == 200
    assert response.json() == {"status": "success", "outcome": "processed"}
    assert payment_status(engine, booking_id) == "confirmed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_live_mode_signature_is_accepted(
    engine: Engine, make_booking: Callable[..., str], webhook_secret: str
) -> None:
    booking_id = make_booking()
    body = paid_body(booking_id)

    response = await post_webhook(body, signed_headers(body, key="li"))

    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_replayed_delivery_is_a_duplicate(
    engine: Engine,
    make_booking: Callable[..., str],
    agent: dict[str, Any],
    count_rows: Callable[..., int],
    webhook_secret: str,
) -> None:
    booking_id = make_booking(agent_id=agent["id"])
    body = paid_body(booking_id)
    headers = signed_headers(body)

    first = await post_webhook(body, headers)
    second = await post_webhook(body, headers)

    assert first.json()["outcome"] == "processed"
    assert second.status_code == 200
    assert second.json()["outcome"] == "duplicate"
    assert count_rows(Commission, Commission.booking_id == booking_id) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tampered_body_is_rejected(
    engine: Engine, make_booking: Callable[..., str], webhook_secret: str
) -> None:
    booking_id = make_booking()
    headers = signed_headers(paid_body(booking_id))

    response = await post_webhook(paid_body(booking_id, event_id="evt_forged"), headers)

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature"}
    assert payment_status(engine, booking_id) == "pending"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_signature_is_rejected(
    engine: Engine, make_booking: Callable[..., str], webhook_secret: str
) -> None:
    booking_id = make_booking()

    response = await post_webhook(paid_body(booking_id), {"content-type": "application/json"})

    assert response.status_code == 401
    assert payment_status(engine, booking_id) == "pending"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_booking_is_acknowledged(engine: Engine, webhook_secret: str) -> None:
    body = paid_body("no-such-booking")

    response = await post_webhook(body, signed_headers(body))

    assert response.status_code == 200
    assert response.json()["outcome"] == "ignored"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_event_types_are_acknowledged(engine: Engine, webhook_secret: str) -> None:
    body = json.dumps({"data": {"id": "evt_x", "attributes": {"type": "payment.refunded"}}}).encode()

    response = await post_webhook(body, signed_headers(body))

    assert response.status_code == 200
    assert response.json()["outcome"] == "ignored"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_json_returns_400(engine: Engine, webhook_secret: str) -> None:
    body = b"{not json"

    response = await post_webhook(body, signed_headers(body))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON"}


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "payload",
    [
        {"data": "evt_1"},
        {"data": {"id": "evt_1", "attributes": "checkout_session.payment.paid"}},
        {"data": {"id": "evt_1", "attributes": [1, 2]}},
    ],
)
async def test_malformed_event_shape_returns_400(
    engine: Engine, webhook_secret: str, payload: dict[str, Any]
) -> None:
    body = json.dumps(payload).encode("utf-8")

    response = await post_webhook(body, signed_headers(body))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_non_object_session_is_acknowledged(engine: Engine, webhook_secret: str) -> None:
    body = json.dumps(
        {
            "data": {
                "id": "evt_odd",
                "attributes": {"type": "checkout_session.payment.paid", "data": "cs_1"},
            }
        }
    ).encode("utf-8")

    response = await post_webhook(body, signed_headers(body))

    assert response.status_code == 200
    assert response.json()["outcome"] == "ignored"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unsigned_delivery_accepted_without_secret(
    engine: Engine, make_booking: Callable[..., str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("booking_engine.routes.webhook.PAYMONGO_WEBHOOK_SECRET", None)
    booking_id = make_booking()

    response = await post_webhook(paid_body(booking_id), {"content-type": "application/json"})

    assert response.status_code == 200
    assert payment_status(engine, booking_id) == "confirmed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_processing_failure_returns_500(
    engine: Engine, webhook_secret: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    def explode(*args: Any, **kwargs: Any) -> str:
        raise RuntimeError("database went away")

    monkeypatch.setattr("booking_engine.routes.webhook.handle_webhook_event", explode)
    body = paid_body("b-1")

    response = await post_webhook(body, signed_headers(body))

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
