"""Guide and guide assignment model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .user import User


class GuideStatus(str, Enum):
    """Guide availability. Derived from the guide's active assignments."""
    AVAILABLE = "available"
    BUSY = "busy"


class AssignmentStatus(str, Enum):
    """Guide assignment status enumeration."""
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


ACTIVE_ASSIGNMENT_STATUSES = (AssignmentStatus.ASSIGNED, AssignmentStatus.IN_PROGRESS)


class Guide(Base):
    """Tour guide profile attached to a user."""

    __tablename__ = "guides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    status: Mapped[GuideStatus] = mapped_column(
        String(20),
        nullable=False,
        default=GuideStatus.AVAILABLE,
        index=True
    )

    user: Mapped["User"] = relationship("User", back_populates="guide_profile")
    assignments: Mapped[list["GuideAssignment"]] = relationship(
        "GuideAssignment",
        back_populates="guide"
    )

    def __repr__(self) -> str:
        return f"<Guide(id={self.id}, user_id={self.user_id}, status={self.status})>"


class GuideAssignment(Base):
    """Links exactly one guide to exactly one booking."""

    __tablename__ = "tour_guide_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guide_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("guides.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    booking_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=AssignmentStatus.ASSIGNED,
        index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    assigned_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    guide: Mapped["Guide"] = relationship("Guide", back_populates="assignments")
    booking: Mapped["Booking"] = relationship("Booking", back_populates="assignment")

    def __repr__(self) -> str:
        return (
            f"<GuideAssignment(id={self.id}, guide_id={self.guide_id}, "
            f"booking_id={self.booking_id}, status={self.status})>"
        )
