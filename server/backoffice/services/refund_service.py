"""Refund approval paid out as a loyalty-sized gift card."""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import LoyaltyPolicy, settings
from ..core.exceptions import ConflictError, NotFoundError, PersistenceError
from ..core.observability import metrics_collector
from ..models.refund import GiftCard, GiftCardStatus, Refund, RefundMethod, RefundStatus
from .loyalty_service import GiftCardBonus, LoyaltyService, validate_positive_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GiftCardRefund:
    """An approved refund and the gift card issued for it."""

    refund: Refund
    gift_card: GiftCard
    sizing: GiftCardBonus


class RefundService:
    """Service for refund approvals."""

    def __init__(self, db: AsyncSession, policy: Optional[LoyaltyPolicy] = None):
        self.db = db
        self.loyalty_service = LoyaltyService(db, policy)

    def _generate_gift_card_code(self, length: int = 12) -> str:
        """Generate a random gift card code."""
        alphabet = string.ascii_uppercase + string.digits
        return "GC-" + ''.join(secrets.choice(alphabet) for _ in range(length))

    async def _unique_gift_card_code(self) -> str:
        code = self._generate_gift_card_code()
        while await self.db.scalar(select(GiftCard.id).where(GiftCard.code == code)):
            code = self._generate_gift_card_code()
        return code

    async def get_refund_or_raise(self, refund_id: int, lock: bool = False) -> Refund:
        """
        Get refund (with its booking) by ID or raise NotFoundError.

        With ``lock`` the row is selected FOR UPDATE and reloaded, so a
        concurrent approval waits and then sees the committed status.
        """
        stmt = select(Refund).options(selectinload(Refund.booking)).where(Refund.id == refund_id)
        if lock:
            stmt = stmt.with_for_update(of=Refund).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        refund = result.scalar_one_or_none()
        if not refund:
            logger.warning("Refund not found", extra={"refund_id": refund_id})
            raise NotFoundError(resource_type="refund", resource_id=refund_id)
        return refund

    async def approve_as_gift_card(self, refund_id: int, notes: Optional[str] = None) -> GiftCardRefund:
        """
        Approve a pending refund by issuing a gift card.

        The card is worth the refund amount plus the customer's loyalty bonus.

        Args:
            refund_id: Refund to approve
            notes: Admin notes stored on the refund

        Returns:
            The completed refund, the issued gift card and the sizing used

        Raises:
            InvalidArgumentError: If refund_id is not a positive integer
            NotFoundError: If the refund does not exist
            ConflictError: If the refund is not pending
            PersistenceError: If the changes cannot be saved
        """
        refund_id = validate_positive_id(refund_id, field="refund_id", label="Refund ID")
        try:
            refund = await self.get_refund_or_raise(refund_id, lock=True)
        except SQLAlchemyError as e:
            await self.db.rollback()
            error = PersistenceError()
            logger.error(
                "Failed to lock refund",
                exc_info=True,
                extra={"refund_id": refund_id, "error_id": error.error_id, "error": str(e)},
            )
            raise error from e

        if refund.status != RefundStatus.PENDING:
            status = RefundStatus(refund.status).value
            # Release the row lock
            await self.db.rollback()
            logger.warning(
                "Refund approval rejected - refund not pending",
                extra={"refund_id": refund_id, "status": status},
            )
            raise ConflictError(f"Refund {refund_id} is not pending (status: {status})")

        user_id = refund.booking.user_id
        sizing = await self.loyalty_service.calculate_gift_card_bonus(user_id, refund.amount)

        gift_card = GiftCard(
            code=await self._unique_gift_card_code(),
            user_id=user_id,
            booking_id=refund.booking_id,
            amount=sizing.total_gift_card_amount,
            balance=sizing.total_gift_card_amount,
            expiry_date=date.today() + timedelta(days=settings.gift_card_validity_days),
            status=GiftCardStatus.ACTIVE,
        )

        refund.status = RefundStatus.COMPLETED
        refund.method = RefundMethod.GIFT_CARD
        refund.completed_at = datetime.utcnow()
        refund.notes = notes or "Refund issued as gift card"

        self.db.add(gift_card)
        self.db.add(refund)

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            error = PersistenceError()
            logger.error(
                "Failed to save gift card refund",
                exc_info=True,
                extra={"refund_id": refund_id, "error_id": error.error_id, "error": str(e)},
            )
            raise error from e

        await self.db.refresh(gift_card)
        metrics_collector.record_gift_card_issued(sizing.bonus.tier.value)

        logger.info(
            "Refund approved as gift card",
            extra={
                "refund_id": refund_id,
                "booking_id": refund.booking_id,
                "user_id": user_id,
                "gift_card_id": gift_card.id,
                "refund_amount": str(sizing.booking_amount),
                "bonus_amount": str(sizing.bonus_amount),
                "gift_card_amount": str(gift_card.amount),
                "tier": sizing.bonus.tier.value,
            },
        )

        return GiftCardRefund(refund=refund, gift_card=gift_card, sizing=sizing)
