"""Refund and gift card model definitions."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .user import User


class RefundStatus(str, Enum):
    """Refund status enumeration."""
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class RefundMethod(str, Enum):
    """How a refund is paid out."""
    ORIGINAL = "original"
    GIFT_CARD = "giftcard"


class GiftCardStatus(str, Enum):
    """Gift card status enumeration."""
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Refund(Base):
    """Refund request for a booking."""

    __tablename__ = "refunds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[RefundMethod] = mapped_column(
        String(20),
        nullable=False,
        default=RefundMethod.ORIGINAL
    )
    status: Mapped[RefundStatus] = mapped_column(
        String(20),
        nullable=False,
        default=RefundStatus.PENDING,
        index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_refund_amount_positive"),
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="refunds")

    def __repr__(self) -> str:
        return f"<Refund(id={self.id}, booking_id={self.booking_id}, status={self.status})>"


class GiftCard(Base):
    """Stored-value gift card owned by a user."""

    __tablename__ = "gift_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    booking_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[GiftCardStatus] = mapped_column(
        String(20),
        nullable=False,
        default=GiftCardStatus.ACTIVE
    )

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_gift_card_amount_positive"),
        CheckConstraint("balance >= 0", name="ck_gift_card_balance_non_negative"),
    )

    user: Mapped["User"] = relationship("User", back_populates="gift_cards")

    def __repr__(self) -> str:
        return f"<GiftCard(id={self.id}, code='{self.code}', amount={self.amount}, status={self.status})>"
