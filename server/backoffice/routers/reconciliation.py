"""Reconciliation router for triggering booking auto-completion."""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..schemas.common import ErrorResponse
from ..schemas.reconciliation import AutoCompleteResponse, CompletedBooking, FailedBooking
from ..services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/v1/reconciliation", tags=["reconciliation"])

DB_DEPENDENCY = Depends(get_db)


@router.post("/auto-complete", response_model=AutoCompleteResponse, responses={500: {"model": ErrorResponse}})
async def auto_complete_bookings(db: AsyncSession = DB_DEPENDENCY) -> AutoCompleteResponse:
    """
    Complete every booking whose travel window has ended.

    Per-booking failures do not fail the run; they are listed in
    ``failed_bookings`` and excluded from ``completed_count``.
    """
    result = await ReconciliationService(db).run_auto_completion(trigger="api")
    finished_at = result.finished_at or datetime.utcnow()

    return AutoCompleteResponse(
        message=result.message,
        completed_count=result.completed_count,
        total_checked=result.total_checked,
        failed_count=result.failed_count,
        completed_bookings=[
            CompletedBooking(
                booking_id=item.booking_id,
                booking_reference=item.booking_reference,
                guide_name=item.guide_name,
                travel_date=item.travel_date,
                end_date=item.end_date,
                days_past_end=item.days_past_end,
                guide_status_updated=item.guide_status_updated.value,
            )
            for item in result.completed
        ],
        failed_bookings=[
            FailedBooking(
                booking_id=item.booking_id,
                booking_reference=item.booking_reference,
                error=item.error,
            )
            for item in result.failed
        ],
        timestamp=finished_at.strftime("%Y-%m-%d %H:%M:%S"),
    )
