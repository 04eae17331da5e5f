"""Loyalty-related Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import SuccessResponse


class BonusRequest(BaseModel):
    """Request schema for a bonus lookup, optionally sizing a gift card."""

    user_id: int = Field(..., gt=0, description="Customer to score")
    booking_amount: Optional[float] = Field(
        None, gt=0, description="Amount to size a gift card for"
    )


class ActivityRequest(BaseModel):
    """Request schema for a customer activity lookup."""

    user_id: int = Field(..., gt=0, description="Customer to summarise")


class Bonus(BaseModel):
    """Bonus information for a customer."""

    score: float = Field(..., ge=0, description="Composite activity score (0-100)")
    tier: str = Field(..., description="Loyalty tier")
    bonus_percentage: float = Field(..., ge=0, description="Bonus percentage for the tier")
    reason: str = Field(..., description="Explanation of the bonus")
    booking_count: int = Field(..., ge=0, description="Bookings of any status")
    completed_count: int = Field(..., ge=0, description="Completed bookings")
    total_spent: float = Field(..., ge=0, description="Sum of settled booking amounts")
    activity_score: float = Field(..., ge=0, description="Same value as score")


class BonusData(BaseModel):
    user_id: int
    bonus: Bonus


class BonusResponse(SuccessResponse):
    data: BonusData


class GiftCardBonusData(BaseModel):
    """Gift card sizing for a booking amount."""

    user_id: int
    booking_amount: float
    bonus_percentage: float
    bonus_amount: float
    total_gift_card_amount: float
    tier: str
    reason: str
    booking_count: int
    activity_score: float


class GiftCardBonusResponse(SuccessResponse):
    data: GiftCardBonusData


class Activity(BaseModel):
    """Activity summary for a customer."""

    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    total_spent: float
    first_booking_date: Optional[datetime] = None
    last_booking_date: Optional[datetime] = None
    gift_cards_received: int
    activity_score: float
    bonus_info: Bonus


class ActivityData(BaseModel):
    user_id: int
    activity: Activity


class ActivityResponse(SuccessResponse):
    data: ActivityData
