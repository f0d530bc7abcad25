"""Test configuration and fixtures."""

import logging
from datetime import date, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from railbook.core.database import Base, SessionProvider, create_engine
from railbook.models import *  # noqa: F403 - Import all models
from railbook.schemas.booking import ContactInfo, PassengerDetails, PaymentDetails, PaymentMethod
from railbook.schemas.catalog import CreateStationRequest, CreateTrainRequest
from railbook.schemas.common import Money
from railbook.services.booking_engine import BookingEngine
from railbook.services.booking_store import BookingStore
from railbook.services.catalog_service import CatalogService
from railbook.services.payment_gateway import SimulatedPaymentGateway

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

START_TIME = datetime(2030, 1, 10, 8, 0, 0)
TRAVEL_DATE = date(2030, 1, 20)
DECLINED_CARD = "4000000000000002"
GOOD_CARD = "4242424242424242"


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def info_logging(caplog):
    """Run every test with INFO logging so each log call builds a full record."""
    caplog.set_level(logging.INFO)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def sessions(test_engine):
    """Session provider bound to the test database."""
    return SessionProvider(test_engine)


@pytest_asyncio.fixture(scope="function")
async def catalog(sessions):
    return CatalogService(sessions)


@pytest_asyncio.fixture(scope="function")
async def store(sessions):
    return BookingStore(sessions)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture(scope="function")
async def stations(catalog):
    """Two stations: Colombo Fort and Kandy."""
    colombo = await catalog.create_station(CreateStationRequest(name="Colombo Fort", code="FOT"))
    kandy = await catalog.create_station(CreateStationRequest(name="Kandy", code="KDT"))
    return colombo, kandy


@pytest_asyncio.fixture(scope="function")
async def train(catalog, stations):
    """Train 1005, base fare 1000, 5 first / 10 second / 20 third class seats."""
    colombo, kandy = stations
    return await catalog.create_train(
        CreateTrainRequest(
            train_number="1005",
            name="Podi Menike",
            train_type="Express",
            departure_station_id=colombo.id,
            arrival_station_id=kandy.id,
            departure_time="05:55",
            arrival_time="08:50",
            base_price=Money(amount=1000, currency="LKR"),
            first_class_seats=5,
            second_class_seats=10,
            third_class_seats=20,
        )
    )


@pytest_asyncio.fixture(scope="function")
async def booking_engine(catalog, store, clock):
    """Booking engine with a controllable clock and a fresh seat inventory."""
    return BookingEngine(
        catalog=catalog,
        store=store,
        payment_gateway=SimulatedPaymentGateway(clock=clock),
        clock=clock,
    )


@pytest_asyncio.fixture(scope="function")
async def test_app(booking_engine):
    """Create a test FastAPI application serving the test engine."""
    from railbook.main import create_app

    return create_app(booking_engine=booking_engine)


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def contact():
    return ContactInfo(email="nimal@example.com", phone="+94 77 123 4567")


@pytest.fixture
def make_passengers():
    """Factory for ``n`` valid passengers."""

    def _make(n: int) -> list[PassengerDetails]:
        return [
            PassengerDetails(
                first_name=f"Passenger{i}",
                last_name="Perera",
                id_number=f"NIC{i:05d}",
                gender="female" if i % 2 else "male",
            )
            for i in range(n)
        ]

    return _make


@pytest.fixture
def card_payment():
    return PaymentDetails(
        method=PaymentMethod.CARD,
        card_number=GOOD_CARD,
        card_name="Nimal Perera",
        expiration_date="12/35",
        cvc="123",
    )


@pytest.fixture
def declined_payment():
    return PaymentDetails(
        method=PaymentMethod.CARD,
        card_number=DECLINED_CARD,
        card_name="Nimal Perera",
        expiration_date="12/35",
        cvc="123",
    )


@pytest.fixture
def sample_passenger_data():
    """Sample passenger payload for API tests."""
    return {
        "first_name": "Kamal",
        "last_name": "Silva",
        "id_number": "199012345678",
        "gender": "male",
    }


@pytest.fixture
def sample_card_data():
    """Sample card payload for API tests."""
    return {
        "method": "card",
        "card_number": GOOD_CARD,
        "card_name": "Kamal Silva",
        "expiration_date": "12/35",
        "cvc": "123",
    }
