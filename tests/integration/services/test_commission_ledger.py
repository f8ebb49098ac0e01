"""
Integration tests for commission derivation, settlement and agent claims.
"""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import update
from sqlalchemy.engine import Engine

from booking_engine.actors import Actor, Role
from booking_engine.db.readers.commissions import get_commission
from booking_engine.errors import (
    AuthorizationError,
    BookingNotFoundError,
    CommissionNotFoundError,
    InvalidStateError,
    ValidationError,
)
from booking_engine.models.bookings import Booking
from booking_engine.models.commissions import Commission
from booking_engine.models.notifications import Notification
from booking_engine.models.users import User, UserRole
from booking_engine.services.bookings import cancel_booking, confirm_booking
from booking_engine.services.commissions import (
    claim_booking,
    compute_commission_amount,
    get_commissions,
    mark_paid,
    reject,
    search_claimable_bookings,
)


@pytest.fixture
def commission_id(engine: Engine, make_booking: Callable[..., str], agent: dict[str, Any]) -> str:
    """A PENDING commission derived by confirming an agent-linked booking."""
    booking_id = make_booking(agent_id=agent["id"])
    result = confirm_booking(engine, booking_id, "webhook")
    assert result.commission_id is not None
    return result.commission_id


def commission(engine: Engine, commission_id: str) -> dict[str, Any]:
    with engine.connect() as conn:
        row = get_commission(conn, commission_id)
    assert row is not None
    return row


@pytest.mark.unit
@pytest.mark.parametrize(
    "total,rate,expected",
    [
        (700000, 0.1, 70000),
        (700000, 0.0, 0),
        (333333, 0.05, 16667),  # 16666.65 rounds half-up
        (1, 0.5, 1),
    ],
)
def test_compute_commission_amount(total: int, rate: float, expected: int) -> None:
    assert compute_commission_amount(total, rate) == expected


@pytest.mark.integration
def test_commission_derived_at_agent_rate_on_confirm(
    engine: Engine, commission_id: str, agent: dict[str, Any]
) -> None:
    row = commission(engine, commission_id)

    assert row["amount"] == 70000
    assert row["agent_id"] == agent["id"]
    assert row["status"] == "PENDING"
    assert row["paid_at"] is None


@pytest.mark.integration
def test_rate_change_does_not_alter_existing_commission(
    engine: Engine, commission_id: str, agent: dict[str, Any]
) -> None:
    with engine.begin() as conn:
        conn.execute(update(User).where(User.id == agent["id"]).values(commission_rate=0.5))

    assert commission(engine, commission_id)["amount"] == 70000


@pytest.mark.integration
def test_mark_paid(
    engine: Engine,
    commission_id: str,
    admin_actor: Actor,
    agent: dict[str, Any],
    count_rows: Callable[..., int],
) -> None:
    mark_paid(engine, commission_id, admin_actor)

    row = commission(engine, commission_id)
    assert row["status"] == "PAID_OUT"
    assert row["paid_at"] is not None
    assert count_rows(
        Notification, Notification.user_id == agent["id"], Notification.title == "Commission Paid"
    ) == 1


@pytest.mark.integration
def test_reject(engine: Engine, commission_id: str, admin_actor: Actor) -> None:
    reject(engine, commission_id, admin_actor)

    row = commission(engine, commission_id)
    assert row["status"] == "REJECTED"
    assert row["paid_at"] is None


@pytest.mark.integration
def test_rejected_commission_cannot_be_paid(
    engine: Engine, commission_id: str, admin_actor: Actor
) -> None:
    reject(engine, commission_id, admin_actor)

    with pytest.raises(InvalidStateError):
        mark_paid(engine, commission_id, admin_actor)
    assert commission(engine, commission_id)["status"] == "REJECTED"


@pytest.mark.integration
def test_paid_commission_cannot_be_paid_or_rejected_again(
    engine: Engine, commission_id: str, admin_actor: Actor
) -> None:
    mark_paid(engine, commission_id, admin_actor)

    with pytest.raises(InvalidStateError):
        mark_paid(engine, commission_id, admin_actor)
    with pytest.raises(InvalidStateError):
        reject(engine, commission_id, admin_actor)


@pytest.mark.integration
def test_settlement_is_admin_only(
    engine: Engine, commission_id: str, agent_actor: Actor
) -> None:
    with pytest.raises(AuthorizationError):
        mark_paid(engine, commission_id, agent_actor)
    assert commission(engine, commission_id)["status"] == "PENDING"


@pytest.mark.integration
def test_settle_unknown_commission(engine: Engine, admin_actor: Actor) -> None:
    with pytest.raises(CommissionNotFoundError):
        mark_paid(engine, "missing", admin_actor)


@pytest.mark.integration
def test_agents_see_only_their_commissions(
    engine: Engine,
    commission_id: str,
    make_user: Callable[..., dict[str, Any]],
    agent_actor: Actor,
    admin_actor: Actor,
) -> None:
    other = make_user(UserRole.AGENT, name="Other Agent", commission_rate=0.2)
    other_actor = Actor(actor_id=other["id"], role=Role.AGENT)

    assert [row["id"] for row in get_commissions(engine, agent_actor)] == [commission_id]
    assert get_commissions(engine, other_actor) == []
    assert len(get_commissions(engine, admin_actor)) == 1


@pytest.mark.integration
def test_claim_orphan_booking(
    engine: Engine,
    make_booking: Callable[..., str],
    agent_actor: Actor,
    admin: dict[str, Any],
    count_rows: Callable[..., int],
) -> None:
    booking_id = make_booking(guest_name="Rosa Santos")
    confirm_booking(engine, booking_id, "webhook")

    matches = search_claimable_bookings(engine, agent_actor, "rosa")
    assert [match["id"] for match in matches] == [booking_id]

    claimed = claim_booking(engine, booking_id, agent_actor)

    assert claimed["amount"] == 70000
    assert claimed["commission_id"] is not None
    assert count_rows(Commission, Commission.booking_id == booking_id) == 1
    assert count_rows(
        Notification, Notification.user_id == admin["id"], Notification.title == "Commission Claim"
    ) == 1
    # No longer an orphan
    assert search_claimable_bookings(engine, agent_actor, "rosa") == []


@pytest.mark.integration
def test_claim_already_claimed_booking_is_rejected(
    engine: Engine,
    make_booking: Callable[..., str],
    agent_actor: Actor,
    make_user: Callable[..., dict[str, Any]],
    count_rows: Callable[..., int],
) -> None:
    booking_id = make_booking()
    confirm_booking(engine, booking_id, "webhook")
    claim_booking(engine, booking_id, agent_actor)
    rival = make_user(UserRole.AGENT, name="Rival", commission_rate=0.3)

    with pytest.raises(InvalidStateError, match="already claimed"):
        claim_booking(engine, booking_id, Actor(actor_id=rival["id"], role=Role.AGENT))
    assert count_rows(Commission) == 1


@pytest.mark.integration
def test_claim_rejected_when_commission_already_exists(
    engine: Engine,
    make_booking: Callable[..., str],
    agent: dict[str, Any],
    agent_actor: Actor,
    count_rows: Callable[..., int],
) -> None:
    booking_id = make_booking(agent_id=agent["id"])
    confirm_booking(engine, booking_id, "webhook")
    # An admin detaches the agent; the commission stays
    with engine.begin() as conn:
        conn.execute(update(Booking).where(Booking.id == booking_id).values(agent_id=None))

    with pytest.raises(InvalidStateError, match="commission already exists"):
        claim_booking(engine, booking_id, agent_actor)
    assert count_rows(Commission) == 1


@pytest.mark.integration
@patch("booking_engine.services.bookings.send_booking_confirmation")
def test_pending_claim_defers_commission_to_confirmation(
    mock_send: MagicMock,
    engine: Engine,
    make_booking: Callable[..., str],
    agent: dict[str, Any],
    agent_actor: Actor,
    count_rows: Callable[..., int],
) -> None:
    booking_id = make_booking(guest_name="Lito Ramos")
    assert [m["id"] for m in search_claimable_bookings(engine, agent_actor, "lito")] == [booking_id]

    claimed = claim_booking(engine, booking_id, agent_actor)

    assert claimed["status"] == "PENDING"
    assert claimed["commission_id"] is None
    assert claimed["amount"] is None
    assert count_rows(Commission) == 0
    assert count_rows(Booking, Booking.id == booking_id, Booking.agent_id == agent["id"]) == 1

    result = confirm_booking(engine, booking_id, "webhook")

    assert result.commission_id is not None
    assert commission(engine, result.commission_id)["amount"] == 70000
    assert count_rows(
        Notification, Notification.user_id == agent["id"], Notification.title == "New Commission"
    ) == 1


@pytest.mark.integration
def test_cancelled_booking_cannot_be_claimed(
    engine: Engine, make_booking: Callable[..., str], agent_actor: Actor
) -> None:
    booking_id = make_booking()
    cancel_booking(engine, booking_id, "expired")

    with pytest.raises(InvalidStateError, match="Cancelled"):
        claim_booking(engine, booking_id, agent_actor)


@pytest.mark.integration
def test_claim_window_is_enforced(
    engine: Engine,
    make_booking: Callable[..., str],
    agent_actor: Actor,
    backdate: Callable[[str, float], None],
) -> None:
    booking_id = make_booking(guest_name="Old Guest")
    confirm_booking(engine, booking_id, "webhook")
    backdate(booking_id, 31 * 24)

    assert search_claimable_bookings(engine, agent_actor, "Old Guest") == []
    with pytest.raises(InvalidStateError, match="30 days"):
        claim_booking(engine, booking_id, agent_actor)


@pytest.mark.integration
def test_claim_unknown_booking(engine: Engine, agent_actor: Actor) -> None:
    with pytest.raises(BookingNotFoundError):
        claim_booking(engine, "missing", agent_actor)


@pytest.mark.integration
def test_claims_are_agent_only(
    engine: Engine, make_booking: Callable[..., str], admin_actor: Actor
) -> None:
    booking_id = make_booking()
    confirm_booking(engine, booking_id, "webhook")

    with pytest.raises(AuthorizationError):
        claim_booking(engine, booking_id, admin_actor)
    with pytest.raises(AuthorizationError):
        search_claimable_bookings(engine, admin_actor, "Juan")


@pytest.mark.integration
def test_claim_search_needs_two_characters(engine: Engine, agent_actor: Actor) -> None:
    with pytest.raises(ValidationError):
        search_claimable_bookings(engine, agent_actor, " j ")


@pytest.mark.integration
def test_search_escapes_like_wildcards(
    engine: Engine, make_booking: Callable[..., str], agent_actor: Actor
) -> None:
    booking_id = make_booking(guest_name="Juan Dela Cruz")
    confirm_booking(engine, booking_id, "webhook")

    assert search_claimable_bookings(engine, agent_actor, "%%") == []
    assert len(search_claimable_bookings(engine, agent_actor, "DELA")) == 1
