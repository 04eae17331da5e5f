"""Loyalty router for bonus and activity lookups."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import LoyaltyPolicy
from ..core.database import get_db
from ..core.dependencies import AdminContext, get_admin_context, get_loyalty_policy
from ..schemas.common import ErrorResponse
from ..schemas.loyalty import (
    Activity,
    ActivityData,
    ActivityRequest,
    ActivityResponse,
    Bonus,
    BonusData,
    BonusRequest,
    BonusResponse,
    GiftCardBonusData,
    GiftCardBonusResponse,
)
from ..services.loyalty_service import BonusInfo, LoyaltyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/loyalty", tags=["loyalty"])

DB_DEPENDENCY = Depends(get_db)
ADMIN_DEPENDENCY = Depends(get_admin_context)
POLICY_DEPENDENCY = Depends(get_loyalty_policy)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _convert_bonus_to_schema(bonus: BonusInfo) -> Bonus:
    return Bonus(
        score=bonus.score,
        tier=bonus.tier.value,
        bonus_percentage=bonus.bonus_percentage,
        reason=bonus.reason,
        booking_count=bonus.booking_count,
        completed_count=bonus.completed_count,
        total_spent=float(bonus.total_spent),
        activity_score=bonus.activity_score,
    )


@router.post("/bonus", response_model=BonusResponse | GiftCardBonusResponse, responses=ERROR_RESPONSES)
async def get_bonus(
    request: BonusRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: AdminContext = ADMIN_DEPENDENCY,
    policy: LoyaltyPolicy = POLICY_DEPENDENCY,
) -> BonusResponse | GiftCardBonusResponse:
    """
    Score a customer.

    With ``booking_amount`` the response sizes a gift card for that amount
    instead of returning the plain bonus information.
    """
    loyalty_service = LoyaltyService(db, policy)

    if request.booking_amount is None:
        bonus = await loyalty_service.calculate_bonus_percentage(request.user_id)
        return BonusResponse(
            data=BonusData(user_id=request.user_id, bonus=_convert_bonus_to_schema(bonus))
        )

    sizing = await loyalty_service.calculate_gift_card_bonus(request.user_id, request.booking_amount)

    logger.info(
        "Gift card bonus calculated",
        extra={
            "user_id": request.user_id,
            "booking_amount": str(sizing.booking_amount),
            "bonus_amount": str(sizing.bonus_amount),
            "admin_session": admin.session_id is not None,
        },
    )

    return GiftCardBonusResponse(
        data=GiftCardBonusData(
            user_id=sizing.user_id,
            booking_amount=float(sizing.booking_amount),
            bonus_percentage=sizing.bonus.bonus_percentage,
            bonus_amount=float(sizing.bonus_amount),
            total_gift_card_amount=float(sizing.total_gift_card_amount),
            tier=sizing.bonus.tier.value,
            reason=sizing.bonus.reason,
            booking_count=sizing.bonus.booking_count,
            activity_score=sizing.bonus.activity_score,
        )
    )


@router.post(
    "/activity",
    response_model=ActivityResponse,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
)
async def get_activity(
    request: ActivityRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: AdminContext = ADMIN_DEPENDENCY,
    policy: LoyaltyPolicy = POLICY_DEPENDENCY,
) -> ActivityResponse:
    """Activity summary and bonus information for a customer."""
    details = await LoyaltyService(db, policy).get_activity_details(request.user_id)

    return ActivityResponse(
        data=ActivityData(
            user_id=request.user_id,
            activity=Activity(
                total_bookings=details.total_bookings,
                completed_bookings=details.completed_bookings,
                cancelled_bookings=details.cancelled_bookings,
                total_spent=float(details.total_spent),
                first_booking_date=details.first_booking_date,
                last_booking_date=details.last_booking_date,
                gift_cards_received=details.gift_cards_received,
                activity_score=details.activity_score,
                bonus_info=_convert_bonus_to_schema(details.bonus_info),
            ),
        )
    )
