"""Reconciliation-related Pydantic schemas."""

from datetime import date
from typing import List

from pydantic import BaseModel, Field

from .common import SuccessResponse


class CompletedBooking(BaseModel):
    """A booking closed out by an auto-completion run."""

    booking_id: int
    booking_reference: str
    guide_name: str
    travel_date: date
    end_date: date = Field(..., description="Travel date plus tour duration")
    days_past_end: int = Field(..., ge=1, description="Whole days since the end date")
    guide_status_updated: str = Field(..., description="Guide status after the update")


class FailedBooking(BaseModel):
    """A candidate booking that could not be completed."""

    booking_id: int
    booking_reference: str
    error: str


class AutoCompleteResponse(SuccessResponse):
    """Result of an auto-completion run."""

    message: str
    completed_count: int = Field(..., ge=0)
    total_checked: int = Field(..., ge=0, description="Candidates found, including failures")
    failed_count: int = Field(0, ge=0)
    completed_bookings: List[CompletedBooking]
    failed_bookings: List[FailedBooking] = Field(default_factory=list)
    timestamp: str = Field(..., description="Run completion time (YYYY-MM-DD HH:MM:SS)")
