"""Test fixtures."""

import os
import tempfile
from datetime import datetime, timedelta

import pytest

# Set test environment before importing the app
_TMP_DIR = tempfile.mkdtemp(prefix="marketplace-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["EVENTS_ENABLED"] = "false"
os.environ["SWEEPER_ENABLED"] = "false"
os.environ["SQLITE_BUSY_TIMEOUT"] = "30"

from fastapi.testclient import TestClient

from marketplace.database import SessionLocal, engine
from marketplace.main import app
from marketplace.models import Base, Bookings, DeliveryMode, SlotStatus, Tenants, Users
from marketplace.models.tables import utcnow

# Reference "now" for service-level tests: 2025-06-01 08:00 UTC
NOW = datetime(2025, 6, 1, 8, 0)


def next_hour(days: int = 1, hour: int = 10) -> datetime:
    """A grid-aligned start in the real future (for API tests)."""
    return (utcnow() + timedelta(days=days)).replace(
        hour=hour, minute=0, second=0, microsecond=0
    )


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(auth_id: str) -> Users:
        user = Users(auth_id=auth_id, email=f"{auth_id}@example.com")
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def owner(make_user):
    return make_user("auth_owner")


@pytest.fixture
def customer(make_user):
    return make_user("auth_customer")


@pytest.fixture
def other_customer(make_user):
    return make_user("auth_other")


@pytest.fixture
def tenant(db, owner):
    tenant = Tenants(slug="yoga-anna", name="Yoga with Anna", owner_id=owner.id, hourly_rate=40.0)
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def other_tenant(db, other_customer):
    tenant = Tenants(slug="bike-fix", name="Bike Fix", owner_id=other_customer.id, hourly_rate=25.0)
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def make_slot(db, tenant):
    """Insert a slot directly, bypassing the creation guard."""
    def _make(
        start: datetime,
        status: SlotStatus = SlotStatus.AVAILABLE,
        customer_id: str | None = None,
        tenant_id: str | None = None,
        minutes: int = 60,
    ) -> Bookings:
        slot = Bookings(
            tenant_id=tenant_id or tenant.id,
            start=start,
            end=start + timedelta(minutes=minutes),
            mode=DeliveryMode.ONLINE,
            status=status,
            customer_id=customer_id,
        )
        db.add(slot)
        db.commit()
        return slot
    return _make


@pytest.fixture
def client():
    return TestClient(app)
