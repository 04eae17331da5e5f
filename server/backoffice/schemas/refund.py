"""Refund-related Pydantic schemas."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .common import SuccessResponse


class ApproveGiftCardRefundRequest(BaseModel):
    """Request schema for approving a refund as a gift card."""

    refund_id: int = Field(..., gt=0, description="Pending refund to approve")
    notes: Optional[str] = Field(None, max_length=2000, description="Admin notes")


class GiftCard(BaseModel):
    """Gift card response schema."""

    id: int
    code: str
    user_id: int
    amount: float
    balance: float
    expiry_date: Optional[date] = None
    status: str


class GiftCardSizing(BaseModel):
    refund_amount: float
    bonus_percentage: float
    bonus_amount: float
    tier: str
    reason: str


class GiftCardRefundData(BaseModel):
    refund_id: int
    refund_status: str
    gift_card: GiftCard
    bonus: GiftCardSizing


class GiftCardRefundResponse(SuccessResponse):
    data: GiftCardRefundData
