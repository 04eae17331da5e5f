"""Booking reconciliation: auto-complete bookings whose travel window has ended."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import PersistenceError
from ..core.observability import metrics_collector
from ..models.booking import OPEN_BOOKING_STATUSES, Booking, BookingStatus
from ..models.guide import (
    ACTIVE_ASSIGNMENT_STATUSES,
    AssignmentStatus,
    Guide,
    GuideAssignment,
    GuideStatus,
)
from ..models.tour import Tour
from ..models.user import User

logger = logging.getLogger(__name__)

# Serializes runs within this process. Row locks on the candidate set cover
# runs from other processes.
_run_lock: Optional[asyncio.Lock] = None
_run_lock_loop: Optional[asyncio.AbstractEventLoop] = None


def _get_run_lock() -> asyncio.Lock:
    """Return the run lock for the running event loop."""
    global _run_lock, _run_lock_loop
    loop = asyncio.get_running_loop()
    if _run_lock is None or _run_lock_loop is not loop:
        _run_lock = asyncio.Lock()
        _run_lock_loop = loop
    return _run_lock


@dataclass(frozen=True)
class Candidate:
    """A booking whose travel window may have ended."""

    booking_id: int
    booking_reference: str
    travel_date: date
    duration_days: int
    assignment_id: int
    guide_id: int
    guide_name: str

    @property
    def end_date(self) -> date:
        return self.travel_date + timedelta(days=self.duration_days)


@dataclass(frozen=True)
class CompletedBooking:
    booking_id: int
    booking_reference: str
    guide_name: str
    travel_date: date
    end_date: date
    days_past_end: int
    guide_status_updated: GuideStatus


@dataclass(frozen=True)
class FailedBooking:
    booking_id: int
    booking_reference: str
    error: str


@dataclass
class ReconciliationResult:
    """Outcome of one auto-completion run, including per-item failures."""

    total_checked: int = 0
    completed: list[CompletedBooking] = field(default_factory=list)
    failed: list[FailedBooking] = field(default_factory=list)
    finished_at: Optional[datetime] = None

    @property
    def completed_count(self) -> int:
        return len(self.completed)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def message(self) -> str:
        return f"Auto-completed {self.completed_count} expired booking(s)"


def append_note(existing: Optional[str], note: str) -> str:
    """Append ``note`` on its own line, keeping earlier notes."""
    if not existing:
        return note
    return f"{existing}\n{note}"


class ReconciliationService:
    """Moves expired bookings and their guide assignments to completed."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_candidates(self, today: date) -> list[Candidate]:
        """
        Open bookings with an unfinished guide assignment whose end date
        (travel date + tour duration) is strictly before ``today``.

        The candidate rows are locked (``FOR UPDATE SKIP LOCKED``) on
        dialects that support it, so concurrent runs skip each other's rows.
        """
        stmt = (
            select(
                Booking.id,
                Booking.booking_reference,
                Booking.travel_date,
                Tour.duration_days,
                GuideAssignment.id,
                GuideAssignment.guide_id,
                User.first_name,
                User.last_name,
            )
            .join(Tour, Booking.tour_id == Tour.id)
            .join(GuideAssignment, GuideAssignment.booking_id == Booking.id)
            .join(Guide, GuideAssignment.guide_id == Guide.id)
            .outerjoin(User, Guide.user_id == User.id)
            .where(
                Booking.status.in_(OPEN_BOOKING_STATUSES),
                GuideAssignment.status != AssignmentStatus.COMPLETED,
                # The end date is never before the travel date
                Booking.travel_date < today,
            )
            .order_by(Booking.travel_date, Booking.id)
            .with_for_update(of=[Booking.__table__, GuideAssignment.__table__], skip_locked=True)
        )

        result = await self.db.execute(stmt)

        candidates = []
        for row in result.all():
            booking_id, reference, travel_date, duration, assignment_id, guide_id, first, last = row
            candidate = Candidate(
                booking_id=booking_id,
                booking_reference=reference,
                travel_date=travel_date,
                duration_days=duration or 0,
                assignment_id=assignment_id,
                guide_id=guide_id,
                guide_name=f"{first or ''} {last or ''}".strip(),
            )
            if candidate.end_date < today:
                candidates.append(candidate)
        return candidates

    async def count_active_assignments(self, guide_id: int) -> int:
        """Assignments of the guide that are still running on open bookings."""
        stmt = (
            select(func.count(GuideAssignment.id))
            .join(Booking, GuideAssignment.booking_id == Booking.id)
            .where(
                GuideAssignment.guide_id == guide_id,
                GuideAssignment.status.in_(ACTIVE_ASSIGNMENT_STATUSES),
                Booking.status.in_(OPEN_BOOKING_STATUSES),
            )
        )
        return int(await self.db.scalar(stmt) or 0)

    async def refresh_guide_status(self, guide: Guide) -> GuideStatus:
        """Set the guide busy iff it still holds an active assignment."""
        active = await self.count_active_assignments(guide.id)
        guide.status = GuideStatus.BUSY if active > 0 else GuideStatus.AVAILABLE
        return guide.status

    async def complete_booking(self, candidate: Candidate, today: date, now: datetime) -> CompletedBooking:
        """Complete one booking and its assignment, then re-derive guide availability."""
        booking = await self.db.get(Booking, candidate.booking_id)
        assignment = await self.db.get(GuideAssignment, candidate.assignment_id)
        guide = await self.db.get(Guide, candidate.guide_id)
        if booking is None or assignment is None or guide is None:
            raise LookupError(f"Booking {candidate.booking_id} changed during reconciliation")

        booking.status = BookingStatus.COMPLETED
        assignment.status = AssignmentStatus.COMPLETED
        assignment.completed_at = now
        assignment.notes = append_note(assignment.notes, f"Auto-completed on {now.isoformat(sep=' ', timespec='seconds')}")
        await self.db.flush()

        guide_status = await self.refresh_guide_status(guide)
        await self.db.flush()

        return CompletedBooking(
            booking_id=candidate.booking_id,
            booking_reference=candidate.booking_reference,
            guide_name=candidate.guide_name,
            travel_date=candidate.travel_date,
            end_date=candidate.end_date,
            days_past_end=(today - candidate.end_date).days,
            guide_status_updated=GuideStatus(guide_status),
        )

    async def run_auto_completion(
        self,
        today: Optional[date] = None,
        trigger: str = "manual",
    ) -> ReconciliationResult:
        """
        Auto-complete every booking whose travel window has ended.

        Each booking is processed in its own savepoint: a failing booking is
        rolled back, logged and reported in ``failed`` while the rest of the
        batch continues. Runs are serialized within the process.

        Args:
            today: Reference date (defaults to the current UTC date)
            trigger: Label for metrics ("manual", "worker", ...)

        Returns:
            ReconciliationResult with completed and failed items

        Raises:
            PersistenceError: If the candidate set cannot be loaded or the
                batch cannot be committed
        """
        async with _get_run_lock():
            started = time.perf_counter()
            now = datetime.utcnow()
            today = today or now.date()

            try:
                candidates = await self.find_candidates(today)
            except SQLAlchemyError as e:
                await self.db.rollback()
                error = PersistenceError()
                logger.error(
                    "Failed to load auto-completion candidates",
                    exc_info=True,
                    extra={"error_id": error.error_id, "error": str(e)},
                )
                raise error from e

            result = ReconciliationResult(total_checked=len(candidates))
            guides_released = 0

            for candidate in candidates:
                try:
                    async with self.db.begin_nested():
                        detail = await self.complete_booking(candidate, today, now)
                except Exception as e:
                    logger.error(
                        "Failed to auto-complete booking",
                        exc_info=True,
                        extra={
                            "booking_id": candidate.booking_id,
                            "booking_reference": candidate.booking_reference,
                            "error": str(e),
                        },
                    )
                    result.failed.append(FailedBooking(
                        booking_id=candidate.booking_id,
                        booking_reference=candidate.booking_reference,
                        error=str(e),
                    ))
                    continue

                result.completed.append(detail)
                if detail.guide_status_updated == GuideStatus.AVAILABLE:
                    guides_released += 1

                logger.info(
                    "Booking auto-completed",
                    extra={
                        "booking_id": detail.booking_id,
                        "booking_reference": detail.booking_reference,
                        "end_date": detail.end_date.isoformat(),
                        "days_past_end": detail.days_past_end,
                        "guide_status": detail.guide_status_updated.value,
                    },
                )

            try:
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                error = PersistenceError()
                logger.error(
                    "Failed to commit auto-completion batch",
                    exc_info=True,
                    extra={"error_id": error.error_id, "error": str(e)},
                )
                raise error from e

            result.finished_at = datetime.utcnow()
            metrics_collector.record_reconciliation_run(
                trigger=trigger,
                completed=result.completed_count,
                failed=result.failed_count,
                guides_released=guides_released,
                duration=time.perf_counter() - started,
            )
            logger.info(
                "Auto-completion run finished",
                extra={
                    "trigger": trigger,
                    "total_checked": result.total_checked,
                    "completed_count": result.completed_count,
                    "failed_count": result.failed_count,
                },
            )
            return result
