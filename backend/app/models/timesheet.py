"""
Timesheet models.

WHAT: Weekly consolidation of a user's time entries.

WHY: Timesheets are what gets reviewed and billed. A user picks the
orphaned entries of a week, and the timesheet header records the week,
the review status and the hour totals of exactly those entries.

HOW:
- ``Timesheet`` is the header, unique per organization, user and week
- ``TimesheetEntry`` links a header to one time entry; the unique
  constraint on ``time_entry_id`` is what makes an entry belong to at most
  one timesheet
- ``total_hours``/``billable_hours`` are derived from member entries and
  written back after the association rows exist
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.models.base import Base


class TimesheetStatus(str, Enum):
    """
    Timesheet review status.

    - DRAFT: just created, owner may still change it
    - SUBMITTED: sent for review, locked for the owner
    - APPROVED: accepted by a reviewer
    - REJECTED: sent back with a reason
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class Timesheet(Base):
    """Timesheet header for one user and one Monday-start week."""

    __tablename__ = "timesheets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=TimesheetStatus.DRAFT.value, nullable=False
    )
    total_hours: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), default=Decimal("0"), nullable=False
    )
    billable_hours: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), default=Decimal("0"), nullable=False
    )

    # Review workflow
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reviewed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, onupdate=utcnow, nullable=True
    )

    __table_args__ = (
        Index("ix_timesheets_org_id", "org_id"),
        Index("ix_timesheets_user_id", "user_id"),
        Index("ix_timesheets_status", "status"),
        UniqueConstraint(
            "org_id", "user_id", "week_start_date", name="uq_timesheets_user_week"
        ),
        CheckConstraint("total_hours >= 0", name="ck_timesheets_total_hours"),
        CheckConstraint("billable_hours >= 0", name="ck_timesheets_billable_hours"),
    )

    def __repr__(self) -> str:
        return (
            f"<Timesheet(id={self.id}, "
            f"user_id={self.user_id}, "
            f"week={self.week_start_date}, "
            f"status={self.status})>"
        )


class TimesheetEntry(Base):
    """Association of one time entry with one timesheet."""

    __tablename__ = "timesheet_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    timesheet_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("timesheets.id", ondelete="CASCADE"), nullable=False
    )
    time_entry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("time_entries.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_timesheet_entries_timesheet_id", "timesheet_id"),
        UniqueConstraint("time_entry_id", name="uq_timesheet_entries_time_entry"),
    )

    def __repr__(self) -> str:
        return (
            f"<TimesheetEntry(timesheet_id={self.timesheet_id}, "
            f"time_entry_id={self.time_entry_id})>"
        )
