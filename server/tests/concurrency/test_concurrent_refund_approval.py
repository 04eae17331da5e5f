"""Concurrency tests for refund approval."""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backoffice.core.database import Base, enable_sqlite_savepoints
from backoffice.core.exceptions import ConflictError
from backoffice.models import Booking, BookingStatus, GiftCard, Refund, RefundStatus, Tour, User
from backoffice.services.refund_service import GiftCardRefund, RefundService


@pytest_asyncio.fixture(scope="function")
async def file_session_factory(tmp_path):
    """Sessions on a file-backed database, each with its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'refunds.db'}")
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


async def _pending_refund(session_factory) -> int:
    async with session_factory() as session:
        customer = User(first_name="Ana", last_name="Customer", email="ana@example.com")
        tour = Tour(title="Coast Walk", duration_days=3, price=Decimal("400.00"))
        session.add_all([customer, tour])
        await session.flush()

        booking = Booking(
            booking_reference="BK-000001",
            user_id=customer.id,
            tour_id=tour.id,
            travel_date=date.today() + timedelta(days=20),
            status=BookingStatus.CANCELLED,
            total_amount=Decimal("400.00"),
        )
        session.add(booking)
        await session.flush()

        refund = Refund(booking_id=booking.id, amount=Decimal("400.00"), status=RefundStatus.PENDING)
        session.add(refund)
        await session.commit()
        return refund.id


@pytest.mark.asyncio
async def test_concurrent_approvals_issue_one_gift_card(file_session_factory):
    """Test two simultaneous approvals of one refund: one card, one conflict."""
    refund_id = await _pending_refund(file_session_factory)

    async def approve():
        async with file_session_factory() as session:
            return await RefundService(session).approve_as_gift_card(refund_id)

    results = await asyncio.gather(approve(), approve(), return_exceptions=True)

    approved = [r for r in results if isinstance(r, GiftCardRefund)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(approved) == 1
    assert len(conflicts) == 1
    assert conflicts[0].status_code == 409
    assert "not pending (status: completed)" in conflicts[0].message

    async with file_session_factory() as session:
        cards = await session.scalar(select(func.count(GiftCard.id)))
        refund = await session.get(Refund, refund_id)

    assert cards == 1
    assert refund.status == RefundStatus.COMPLETED
