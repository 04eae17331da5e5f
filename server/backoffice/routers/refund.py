"""Refund router for admin refund approvals."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import LoyaltyPolicy
from ..core.database import get_db
from ..core.dependencies import AdminContext, get_admin_context, get_loyalty_policy
from ..models.refund import GiftCardStatus, RefundStatus
from ..schemas.common import ErrorResponse
from ..schemas.refund import (
    ApproveGiftCardRefundRequest,
    GiftCard,
    GiftCardRefundData,
    GiftCardRefundResponse,
    GiftCardSizing,
)
from ..services.refund_service import RefundService

router = APIRouter(prefix="/v1/refunds", tags=["refunds"])

DB_DEPENDENCY = Depends(get_db)
ADMIN_DEPENDENCY = Depends(get_admin_context)
POLICY_DEPENDENCY = Depends(get_loyalty_policy)


@router.post(
    "/approve-gift-card",
    response_model=GiftCardRefundResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 401, 404, 409, 500)},
)
async def approve_refund_as_gift_card(
    request: ApproveGiftCardRefundRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: AdminContext = ADMIN_DEPENDENCY,
    policy: LoyaltyPolicy = POLICY_DEPENDENCY,
) -> GiftCardRefundResponse:
    """Approve a pending refund by issuing a gift card with the loyalty bonus added."""
    approval = await RefundService(db, policy).approve_as_gift_card(request.refund_id, request.notes)
    card = approval.gift_card
    sizing = approval.sizing

    return GiftCardRefundResponse(
        data=GiftCardRefundData(
            refund_id=approval.refund.id,
            refund_status=RefundStatus(approval.refund.status).value,
            gift_card=GiftCard(
                id=card.id,
                code=card.code,
                user_id=card.user_id,
                amount=float(card.amount),
                balance=float(card.balance),
                expiry_date=card.expiry_date,
                status=GiftCardStatus(card.status).value,
            ),
            bonus=GiftCardSizing(
                refund_amount=float(sizing.booking_amount),
                bonus_percentage=sizing.bonus.bonus_percentage,
                bonus_amount=float(sizing.bonus_amount),
                tier=sizing.bonus.tier.value,
                reason=sizing.bonus.reason,
            ),
        )
    )
