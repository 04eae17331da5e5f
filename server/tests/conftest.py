"""Test configuration and fixtures."""

import os

# Must be set before the application settings are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTO_COMPLETE_ENABLED", "false")

from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402
from itertools import count  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backoffice.core.config import LoyaltyPolicy  # noqa: E402
from backoffice.core.database import Base, enable_sqlite_savepoints, get_db  # noqa: E402
from backoffice.models import (  # noqa: E402
    AssignmentStatus,
    Booking,
    BookingStatus,
    GiftCard,
    Guide,
    GuideAssignment,
    GuideStatus,
    Payment,
    PaymentStatus,
    Refund,
    RefundStatus,
    Tour,
    User,
    UserRole,
)

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_COOKIES = {"admin_session": "test-admin-session"}


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError

    from backoffice.core.exceptions import (
        ServiceError,
        generic_exception_handler,
        service_error_handler,
        validation_error_handler,
    )
    from backoffice.routers import health, loyalty, metrics, reconciliation, refund

    # Create a simplified test app without lifespan
    app = FastAPI(
        title="Travel Back Office API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "travel-backoffice-api",
            "version": "1.0.0",
            "environment": "test",
            "debug": False,
        }

    @app.get("/ready")
    async def readiness_check():
        return {
            "status": "ready",
            "service": "travel-backoffice-api",
            "checks": {"database": "ok", "workers": {}},
        }

    @app.get("/info")
    async def service_info():
        return {
            "service": "travel-backoffice-api",
            "version": "1.0.0",
            "description": "Travel booking back office",
            "environment": "test",
            "debug": False,
            "features": {
                "loyalty_bonus": True,
                "gift_card_refunds": True,
                "auto_completion_worker": False,
            },
        }

    app.include_router(health.router)
    app.include_router(loyalty.router)
    app.include_router(reconciliation.router)
    app.include_router(refund.router)
    app.include_router(metrics.router)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """HTTP client carrying an admin session cookie."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test", cookies=ADMIN_COOKIES) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def anonymous_client(test_app):
    """HTTP client without an admin session."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def policy():
    """Default loyalty policy."""
    return LoyaltyPolicy()


class DataFactory:
    """Inserts users, tours, bookings and guide assignments for tests."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = count(1)

    async def user(self, first_name: str = "Ana", last_name: str = "Customer",
                   role: UserRole = UserRole.CUSTOMER) -> User:
        n = next(self._seq)
        user = User(first_name=first_name, last_name=last_name,
                    email=f"{first_name.lower()}.{n}@example.com", role=role)
        self.session.add(user)
        await self.session.flush()
        return user

    async def tour(self, duration_days: int = 3, price: str = "1000.00") -> Tour:
        tour = Tour(title=f"Tour {next(self._seq)}", duration_days=duration_days, price=Decimal(price))
        self.session.add(tour)
        await self.session.flush()
        return tour

    async def guide(self, first_name: str = "Gus", last_name: str = "Guide") -> Guide:
        user = await self.user(first_name=first_name, last_name=last_name, role=UserRole.GUIDE)
        guide = Guide(user_id=user.id, status=GuideStatus.AVAILABLE)
        self.session.add(guide)
        await self.session.flush()
        return guide

    async def booking(
        self,
        user: User,
        tour: Optional[Tour] = None,
        travel_date: Optional[date] = None,
        status: BookingStatus = BookingStatus.CONFIRMED,
        total_amount: str = "1000.00",
        payment_status: Optional[PaymentStatus] = PaymentStatus.PAID,
    ) -> Booking:
        if tour is None:
            tour = await self.tour()
        booking = Booking(
            booking_reference=f"BK-{next(self._seq):06d}",
            user_id=user.id,
            tour_id=tour.id,
            travel_date=travel_date or date.today() + timedelta(days=30),
            status=status,
            total_amount=Decimal(total_amount),
        )
        self.session.add(booking)
        await self.session.flush()
        if payment_status is not None:
            self.session.add(Payment(booking_id=booking.id, amount=Decimal(total_amount), status=payment_status))
            await self.session.flush()
        return booking

    async def assign(
        self,
        guide: Guide,
        booking: Booking,
        status: AssignmentStatus = AssignmentStatus.ASSIGNED,
    ) -> GuideAssignment:
        assignment = GuideAssignment(guide_id=guide.id, booking_id=booking.id, status=status)
        guide.status = GuideStatus.BUSY
        self.session.add(assignment)
        await self.session.flush()
        return assignment

    async def guided_trip(self, days_ago: int, duration_days: int = 3, guide: Optional[Guide] = None):
        """A confirmed booking with a guide, starting ``days_ago`` days before today."""
        customer = await self.user()
        tour = await self.tour(duration_days=duration_days)
        booking = await self.booking(customer, tour, travel_date=date.today() - timedelta(days=days_ago))
        guide = guide or await self.guide()
        assignment = await self.assign(guide, booking)
        return booking, assignment, guide

    async def refund(self, booking: Booking, amount: str = "500.00",
                     status: RefundStatus = RefundStatus.PENDING) -> Refund:
        refund = Refund(booking_id=booking.id, amount=Decimal(amount), status=status)
        self.session.add(refund)
        await self.session.flush()
        return refund

    async def gift_card(self, user: User, amount: str = "50.00") -> GiftCard:
        card = GiftCard(code=f"GC-TEST{next(self._seq):07d}", user_id=user.id,
                        amount=Decimal(amount), balance=Decimal(amount))
        self.session.add(card)
        await self.session.flush()
        return card

    async def customer_with_history(self, bookings: int, completed: int, amount: str = "1000.00") -> User:
        """Customer with ``bookings`` paid bookings, ``completed`` of them completed."""
        customer = await self.user()
        tour = await self.tour()
        for i in range(bookings):
            status = BookingStatus.COMPLETED if i < completed else BookingStatus.CONFIRMED
            await self.booking(customer, tour, status=status, total_amount=amount)
        return customer


@pytest_asyncio.fixture(scope="function")
async def factory(test_session):
    """Test data factory bound to the test session."""
    return DataFactory(test_session)
