"""Models module exporting all database models."""

from .booking import Booking, BookingStatus, Payment, PaymentStatus
from .guide import AssignmentStatus, Guide, GuideAssignment, GuideStatus
from .refund import GiftCard, GiftCardStatus, Refund, RefundMethod, RefundStatus
from .tour import Tour
from .user import User, UserRole

__all__ = [
    # People
    "User",
    "UserRole",
    "Guide",
    "GuideStatus",

    # Catalogue
    "Tour",

    # Booking entities
    "Booking",
    "BookingStatus",
    "Payment",
    "PaymentStatus",
    "GuideAssignment",
    "AssignmentStatus",

    # Refund entities
    "Refund",
    "RefundMethod",
    "RefundStatus",
    "GiftCard",
    "GiftCardStatus",
]
