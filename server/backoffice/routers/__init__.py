"""FastAPI routers package."""

from .health import router as health_router
from .loyalty import router as loyalty_router
from .metrics import router as metrics_router
from .reconciliation import router as reconciliation_router
from .refund import router as refund_router

__all__ = [
    "health_router",
    "loyalty_router",
    "metrics_router",
    "reconciliation_router",
    "refund_router",
]
