"""
Pytest configuration and shared fixtures.
"""

import os

os.environ.setdefault("BOOKING_DB", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("RABBIT_URL", None)

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from booking_service import bookings
from booking_service.db import Base
from booking_service.directory import LaborProfile, CustomerProfile
from booking_service.errors import StoreUnavailable


class FakeDirectory:
    """In-memory identity directory."""

    def __init__(self):
        self.labors = {}
        self.customers = {}
        self.unavailable = False

    def add_labor(self, labor_id, **fields):
        self.labors[labor_id] = LaborProfile(id=labor_id, **fields)

    def add_customer(self, customer_id, **fields):
        self.customers[customer_id] = CustomerProfile(id=customer_id, **fields)

    async def find_labor_by_id(self, labor_id):
        if self.unavailable:
            raise StoreUnavailable("Identity directory is unavailable")
        return self.labors.get(labor_id)

    async def find_customer_by_id(self, customer_id):
        if self.unavailable:
            raise StoreUnavailable("Identity directory is unavailable")
        return self.customers.get(customer_id)


class RecordingPublisher:
    """Collects domain events instead of sending them to RabbitMQ."""

    enabled = True

    def __init__(self):
        self.events = []

    async def publish_event(self, event):
        self.events.append(event)

    @property
    def event_types(self):
        return [e["event_type"] for e in self.events]


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.add_labor("L1", name="Nimal Perera", skillCategory="Electricians", dailyRate=1500, isActive=True)
    d.add_labor("L2", name="Kamal Silva", skillCategory="Plumbers", dailyRate=None, isActive=False)
    d.add_labor("L3", name="Sunil Fernando", skillCategory="Painters", dailyRate=None, isActive=True)
    d.add_customer("C1", name="Ayesha", email="ayesha@example.com", phone="0771234567", address="12 Lake Rd, Kandy")
    d.add_customer("C2", name="Ruwan", email="ruwan@example.com", phone="0719876543", address="4 Hill St, Galle")
    return d


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest_asyncio.fixture
async def requested_booking(db, directory):
    return await bookings.create_booking(db, directory, customer_id="C1", labor_id="L1", note="Fix wiring")


@pytest_asyncio.fixture
async def accepted_booking(db, directory, requested_booking):
    return await bookings.accept(db, directory, requested_booking.booking_id, "L1")
