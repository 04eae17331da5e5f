#!/usr/bin/env python3
"""Setup script for the travel back-office API."""

import asyncio
import logging
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from backoffice.core.database import async_session_factory, close_db  # noqa: E402
from backoffice.models import (  # noqa: E402
    AssignmentStatus,
    Booking,
    BookingStatus,
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

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def setup_database():
    """Setup the database with the current schema."""
    logger.info("Running database migrations...")

    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    command.upgrade(alembic_cfg, "head")

    logger.info("Database migrations completed")


async def create_sample_data():
    """Create a customer history, an expired guided trip and a pending refund."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing_users = await db.scalar(select(func.count(User.id)))
            if existing_users:
                logger.info("Sample data already exists, skipping...")
                return

            customer = User(first_name="Maria", last_name="Lopez", email="maria@example.com")
            guide_user = User(first_name="Jonas", last_name="Berg", email="jonas@example.com", role=UserRole.GUIDE)
            db.add_all([customer, guide_user])
            await db.flush()

            guide = Guide(user_id=guide_user.id, status=GuideStatus.BUSY)
            tour = Tour(
                title="Fjord Explorer",
                description="Three days along the western fjords with a local guide",
                duration_days=3,
                price=Decimal("1200.00"),
            )
            db.add_all([guide, tour])
            await db.flush()

            # Completed, paid history: makes the customer gold
            for i in range(3):
                booking = Booking(
                    booking_reference=f"BK-HIST-{i + 1:03d}",
                    user_id=customer.id,
                    tour_id=tour.id,
                    travel_date=date.today() - timedelta(days=90 * (i + 1)),
                    status=BookingStatus.COMPLETED,
                    total_amount=tour.price,
                )
                db.add(booking)
                await db.flush()
                db.add(Payment(booking_id=booking.id, amount=tour.price, status=PaymentStatus.PAID))

            # Trip that ended a week ago, still open: picked up by auto-completion
            expired = Booking(
                booking_reference="BK-EXPIRED-001",
                user_id=customer.id,
                tour_id=tour.id,
                travel_date=date.today() - timedelta(days=10),
                status=BookingStatus.CONFIRMED,
                total_amount=tour.price,
            )
            # Cancelled trip with a refund waiting for approval
            cancelled = Booking(
                booking_reference="BK-CANCEL-001",
                user_id=customer.id,
                tour_id=tour.id,
                travel_date=date.today() + timedelta(days=45),
                status=BookingStatus.CANCELLED,
                total_amount=tour.price,
            )
            db.add_all([expired, cancelled])
            await db.flush()

            db.add(GuideAssignment(guide_id=guide.id, booking_id=expired.id, status=AssignmentStatus.ASSIGNED))
            db.add(Refund(booking_id=cancelled.id, amount=tour.price, status=RefundStatus.PENDING))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise

    await close_db()


def main():
    """Main setup function."""
    logger.info("Starting travel back-office setup...")

    setup_database()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn backoffice.main:app --reload")


if __name__ == "__main__":
    main()
