"""Tour model definition."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking


class Tour(Base):
    """Tour entity representing a tour offering."""

    __tablename__ = "tours"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration_days >= 0", name="ck_tour_duration_non_negative"),
        CheckConstraint("price >= 0", name="ck_tour_price_non_negative"),
    )

    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="tour")

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, title='{self.title}', duration_days={self.duration_days})>"
