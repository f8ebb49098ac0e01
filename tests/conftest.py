"""
Shared fixtures for the booking engine test suite.

The environment is configured before any booking_engine module is imported:
booking_engine.config raises when DATABASE_URL or ALLOWED_ORIGINS is unset.
Integration tests run against a throwaway SQLite file whose tables are
created and dropped around every test that requests the `engine` fixture.
"""

from __future__ import annotations

import os
import tempfile
from datetime import date, timedelta
from typing import Any, Callable, Generator

_DB_DIR = tempfile.mkdtemp(prefix="booking-engine-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["ALLOWED_ORIGINS"] = "*"
os.environ["LOG_LEVEL"] = "INFO"
# Empty values win over a developer's .env (load_dotenv does not override)
for _name in ("PAYMONGO_SECRET_KEY", "PAYMONGO_WEBHOOK_SECRET", "RESEND_API_KEY", "CRON_SECRET"):
    os.environ[_name] = ""

import pytest  # noqa: E402
from sqlalchemy import func, insert, select, update  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from booking_engine.actors import Actor, Role  # noqa: E402
from booking_engine.db.engine import engine as app_engine  # noqa: E402
from booking_engine.models.audit_logs import AuditLog  # noqa: E402, F401
from booking_engine.models.base import Base, new_id  # noqa: E402
from booking_engine.models.booking_events import BookingEvent  # noqa: E402, F401
from booking_engine.models.bookings import Booking  # noqa: E402
from booking_engine.models.claim_requests import ClaimRequest  # noqa: E402, F401
from booking_engine.models.commissions import Commission  # noqa: E402, F401
from booking_engine.models.notifications import Notification  # noqa: E402, F401
from booking_engine.models.units import Unit  # noqa: E402
from booking_engine.models.users import User, UserRole  # noqa: E402
from booking_engine.services.bookings import BookingIntake, create_booking  # noqa: E402
from booking_engine.services.commissions import claim_booking  # noqa: E402
from booking_engine.utils.datetime import utc_now  # noqa: E402

CHECK_IN = date.today() + timedelta(days=14)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh schema for one test."""
    Base.metadata.create_all(app_engine)
    yield app_engine
    Base.metadata.drop_all(app_engine)


@pytest.fixture
def unit(engine: Engine) -> dict[str, Any]:
    """A unit priced at 3,500.00 per night for up to 4 guests, 500.00 per extra head."""
    row = {
        "id": new_id(),
        "name": "Pine Cabin",
        "slug": "pine-cabin",
        "base_price": 350000,
        "base_pax": 4,
        "extra_pax_price": 50000,
        "created_at": utc_now(),
        "updated_at": utc_now(),
    }
    with engine.begin() as conn:
        conn.execute(insert(Unit).values(**row))
    return row


@pytest.fixture
def make_user(engine: Engine) -> Callable[..., dict[str, Any]]:
    """Factory inserting a user; returns its column values."""

    def _make(
        role: UserRole = UserRole.CLIENT,
        name: str = "Test User",
        commission_rate: float = 0.0,
        mobile: str | None = None,
        email: str | None = None,
    ) -> dict[str, Any]:
        row = {
            "id": new_id(),
            "name": name,
            "email": email,
            "mobile": mobile,
            "role": role.value,
            "commission_rate": commission_rate,
            "is_active": True,
            "created_at": utc_now(),
            "updated_at": utc_now(),
        }
        with engine.begin() as conn:
            conn.execute(insert(User).values(**row))
        return row

    return _make


@pytest.fixture
def admin(make_user: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    return make_user(UserRole.ADMIN, name="Front Desk", email="admin@example.com")


@pytest.fixture
def agent(make_user: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    return make_user(UserRole.AGENT, name="Ana Agent", commission_rate=0.1)


@pytest.fixture
def admin_actor(admin: dict[str, Any]) -> Actor:
    return Actor(actor_id=admin["id"], role=Role.ADMIN)


@pytest.fixture
def agent_actor(agent: dict[str, Any]) -> Actor:
    return Actor(actor_id=agent["id"], role=Role.AGENT)


@pytest.fixture
def make_booking(engine: Engine, unit: dict[str, Any]) -> Callable[..., str]:
    """
    Factory creating a PENDING booking through the intake path.

    With agent_id the agent claims the booking while it is still PENDING,
    so the commission is derived by the confirm transition.
    """

    def _make(
        guest_name: str = "Juan Dela Cruz",
        guest_mobile: str = "0917 123 4567",
        guest_email: str | None = "juan@example.com",
        nights: int = 2,
        adults: int = 2,
        has_pwd: bool = False,
        agent_id: str | None = None,
    ) -> str:
        created = create_booking(
            engine,
            BookingIntake(
                unit_id=unit["id"],
                check_in=CHECK_IN,
                check_out=CHECK_IN + timedelta(days=nights),
                adults=adults,
                guest_name=guest_name,
                guest_mobile=guest_mobile,
                guest_email=guest_email,
                has_pwd=has_pwd,
            ),
        )
        if agent_id:
            claim_booking(engine, created.booking_id, Actor(actor_id=agent_id, role=Role.AGENT))
        return created.booking_id

    return _make


@pytest.fixture
def count_rows(engine: Engine) -> Callable[..., int]:
    """Count rows of a model matching the given SQL criteria."""

    def _count(model: Any, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(model)
        for criterion in criteria:
            stmt = stmt.where(criterion)
        with engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    return _count


@pytest.fixture
def backdate(engine: Engine) -> Callable[[str, float], None]:
    """Set a booking's creation time to `hours_old` hours ago."""

    def _backdate(booking_id: str, hours_old: float) -> None:
        with engine.begin() as conn:
            conn.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values(created_at=utc_now() - timedelta(hours=hours_old))
            )

    return _backdate
