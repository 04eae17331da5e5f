"""Service layer package."""

from .loyalty_service import LoyaltyService
from .reconciliation_service import ReconciliationService
from .refund_service import RefundService

__all__ = [
    "LoyaltyService",
    "ReconciliationService",
    "RefundService",
]
