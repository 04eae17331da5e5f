"""Loyalty scoring: activity score, tier and gift-card bonus sizing."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import LoyaltyPolicy, settings
from ..core.exceptions import InvalidArgumentError, NotFoundError, PersistenceError
from ..core.observability import metrics_collector
from ..models.booking import SETTLED_PAYMENT_STATUSES, Booking, BookingStatus, Payment
from ..models.refund import GiftCard
from ..models.user import User

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class LoyaltyTier(str, Enum):
    """Customer loyalty classification derived from the activity score."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


@dataclass(frozen=True)
class ActivityProfile:
    """Aggregated booking facts for one customer."""

    booking_count: int = 0
    completed_count: int = 0
    total_spent: Decimal = Decimal("0")


@dataclass(frozen=True)
class BonusInfo:
    """Result of scoring a customer."""

    score: float
    tier: LoyaltyTier
    bonus_percentage: float
    reason: str
    booking_count: int
    completed_count: int
    total_spent: Decimal

    @property
    def activity_score(self) -> float:
        return self.score


@dataclass(frozen=True)
class GiftCardBonus:
    """Gift card sizing for a refund amount."""

    user_id: int
    booking_amount: Decimal
    bonus_amount: Decimal
    total_gift_card_amount: Decimal
    bonus: BonusInfo


@dataclass
class ActivityDetails:
    """Full activity summary for a customer."""

    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    total_spent: Decimal
    first_booking_date: Optional[datetime]
    last_booking_date: Optional[datetime]
    gift_cards_received: int
    activity_score: float
    bonus_info: BonusInfo


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_activity_score(profile: ActivityProfile, policy: LoyaltyPolicy) -> float:
    """
    Composite 0-100 activity score.

    Sum of three capped components: booking frequency, completion rate and
    total spend. No component can exceed its cap.
    """
    frequency = min(profile.booking_count * policy.booking_weight, policy.booking_cap)

    completion_rate = profile.completed_count / max(profile.booking_count, 1)
    completion = min(completion_rate * policy.completion_weight, policy.completion_cap)

    spend = min(float(profile.total_spent) / policy.spend_unit, policy.spend_cap)

    return max(frequency, 0.0) + max(completion, 0.0) + max(spend, 0.0)


def classify_tier(score: float, policy: LoyaltyPolicy) -> LoyaltyTier:
    """Map a score to a tier; thresholds are inclusive lower bounds."""
    if score >= policy.platinum_threshold:
        return LoyaltyTier.PLATINUM
    if score >= policy.gold_threshold:
        return LoyaltyTier.GOLD
    if score >= policy.silver_threshold:
        return LoyaltyTier.SILVER
    return LoyaltyTier.BRONZE


def tier_bonus_percentage(tier: LoyaltyTier, policy: LoyaltyPolicy) -> float:
    return {
        LoyaltyTier.PLATINUM: policy.platinum_bonus,
        LoyaltyTier.GOLD: policy.gold_bonus,
        LoyaltyTier.SILVER: policy.silver_bonus,
        LoyaltyTier.BRONZE: policy.bronze_bonus,
    }[tier]


def score_profile(profile: ActivityProfile, policy: LoyaltyPolicy) -> BonusInfo:
    """Score an activity profile without touching the database."""
    if profile.booking_count == 0:
        return BonusInfo(
            score=0.0,
            tier=LoyaltyTier.BRONZE,
            bonus_percentage=policy.no_history_bonus,
            reason="No booking history",
            booking_count=0,
            completed_count=0,
            total_spent=profile.total_spent,
        )

    score = compute_activity_score(profile, policy)
    tier = classify_tier(score, policy)
    bonus_percentage = tier_bonus_percentage(tier, policy)

    return BonusInfo(
        score=score,
        tier=tier,
        bonus_percentage=bonus_percentage,
        reason=f"{tier.value.capitalize()} tier activity ({bonus_percentage:g}% bonus)",
        booking_count=profile.booking_count,
        completed_count=profile.completed_count,
        total_spent=profile.total_spent,
    )


def validate_positive_id(value: Any, field: str, label: str) -> int:
    """Return ``value`` as a positive int or raise InvalidArgumentError."""
    if value is None or isinstance(value, bool):
        raise InvalidArgumentError(f"{label} required", field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{label} must be an integer", field=field)
    if number <= 0:
        raise InvalidArgumentError(f"{label} must be positive", field=field)
    return number


def validate_customer_id(customer_id: Any) -> int:
    return validate_positive_id(customer_id, field="user_id", label="User ID")


def validate_amount(amount: Any) -> Decimal:
    """Return ``amount`` as a positive Decimal or raise InvalidArgumentError."""
    if amount is None or isinstance(amount, bool):
        raise InvalidArgumentError("Booking amount required", field="booking_amount")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidArgumentError("Booking amount must be a number", field="booking_amount")
    if not value.is_finite() or value <= 0:
        raise InvalidArgumentError("Booking amount must be greater than zero", field="booking_amount")
    return value


class LoyaltyService:
    """Read-only scoring of customers from their booking history."""

    def __init__(self, db: AsyncSession, policy: Optional[LoyaltyPolicy] = None):
        self.db = db
        self.policy = policy if policy is not None else settings.loyalty

    async def get_activity_profile(self, customer_id: int) -> ActivityProfile:
        """
        Aggregate booking count, completed count and settled spend.

        All bookings count regardless of status. Spend only includes bookings
        with at least one paid or completed payment.
        """
        settled_bookings = select(Payment.booking_id).where(
            Payment.status.in_(SETTLED_PAYMENT_STATUSES)
        )
        stmt = select(
            func.count(Booking.id),
            func.coalesce(
                func.sum(case((Booking.status == BookingStatus.COMPLETED, 1), else_=0)),
                0,
            ),
            func.coalesce(
                func.sum(case((Booking.id.in_(settled_bookings), Booking.total_amount), else_=0)),
                0,
            ),
        ).where(Booking.user_id == customer_id)

        try:
            result = await self.db.execute(stmt)
            booking_count, completed_count, total_spent = result.one()
        except SQLAlchemyError as e:
            error = PersistenceError()
            logger.error(
                "Failed to aggregate customer activity",
                exc_info=True,
                extra={"user_id": customer_id, "error_id": error.error_id, "error": str(e)},
            )
            raise error from e

        return ActivityProfile(
            booking_count=int(booking_count or 0),
            completed_count=int(completed_count or 0),
            total_spent=Decimal(str(total_spent or 0)),
        )

    async def calculate_bonus_percentage(self, customer_id: Any) -> BonusInfo:
        """
        Score a customer and look up the bonus percentage for their tier.

        Args:
            customer_id: Customer (user) ID

        Returns:
            BonusInfo with score, tier and bonus percentage

        Raises:
            InvalidArgumentError: If customer_id is missing or not positive
            PersistenceError: If the booking history cannot be read
        """
        customer_id = validate_customer_id(customer_id)
        profile = await self.get_activity_profile(customer_id)
        bonus = score_profile(profile, self.policy)

        metrics_collector.record_bonus_calculated(bonus.tier.value)
        logger.info(
            "Bonus percentage calculated",
            extra={
                "user_id": customer_id,
                "score": bonus.score,
                "tier": bonus.tier.value,
                "bonus_percentage": bonus.bonus_percentage,
                "booking_count": bonus.booking_count,
            },
        )
        return bonus

    async def calculate_gift_card_bonus(self, customer_id: Any, booking_amount: Any) -> GiftCardBonus:
        """
        Size a gift card as ``booking_amount`` plus the customer's bonus.

        Raises:
            InvalidArgumentError: If customer_id or booking_amount is invalid
        """
        customer_id = validate_customer_id(customer_id)
        amount = validate_amount(booking_amount)

        bonus = await self.calculate_bonus_percentage(customer_id)
        exact_bonus = amount * Decimal(str(bonus.bonus_percentage)) / Decimal(100)

        return GiftCardBonus(
            user_id=customer_id,
            booking_amount=amount,
            bonus_amount=round_money(exact_bonus),
            total_gift_card_amount=round_money(amount + exact_bonus),
            bonus=bonus,
        )

    async def get_activity_details(self, customer_id: Any) -> ActivityDetails:
        """
        Full activity summary for a customer.

        Raises:
            InvalidArgumentError: If customer_id is invalid
            NotFoundError: If the user does not exist
        """
        customer_id = validate_customer_id(customer_id)

        try:
            user = await self.db.get(User, customer_id)
            if user is None:
                raise NotFoundError(resource_type="user", resource_id=customer_id)

            stats = (await self.db.execute(
                select(
                    func.count(Booking.id),
                    func.coalesce(func.sum(case((Booking.status == BookingStatus.CANCELLED, 1), else_=0)), 0),
                    func.min(Booking.created_at),
                    func.max(Booking.created_at),
                ).where(Booking.user_id == customer_id)
            )).one()

            gift_cards = await self.db.scalar(
                select(func.count(GiftCard.id)).where(GiftCard.user_id == customer_id)
            )
        except SQLAlchemyError as e:
            error = PersistenceError()
            logger.error(
                "Failed to load customer activity details",
                exc_info=True,
                extra={"user_id": customer_id, "error_id": error.error_id, "error": str(e)},
            )
            raise error from e

        total_bookings, cancelled, first_booking, last_booking = stats
        bonus = await self.calculate_bonus_percentage(customer_id)

        return ActivityDetails(
            total_bookings=int(total_bookings or 0),
            completed_bookings=bonus.completed_count,
            cancelled_bookings=int(cancelled or 0),
            total_spent=bonus.total_spent,
            first_booking_date=first_booking,
            last_booking_date=last_booking,
            gift_cards_received=int(gift_cards or 0),
            activity_score=bonus.score,
            bonus_info=bonus,
        )
