"""
Time Entry model.

WHAT: SQLAlchemy model for a finished, persisted unit of tracked time.

WHY: Time entries are the raw material for:
1. Weekly timesheets submitted for approval
2. Billable hour totals
3. Task logged-time figures

HOW: Uses SQLAlchemy 2.0 with:
- Task and/or project association (at least one is required)
- Provenance tag (manual entry or which timer produced it)
- Billable flag, and an approval flag set when its timesheet is approved
- Timesheet membership derived from the timesheet_entries table
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.models.base import Base


class TimerType(str, Enum):
    """
    Where an entry came from.

    - MANUAL: logged by hand with explicit start/end
    - QUICK_TIMER: free-running timer
    - POMODORO_FOCUS: fixed-duration focus timer
    - POMODORO_BREAK: fixed-duration break timer
    """

    MANUAL = "manual"
    QUICK_TIMER = "quick_timer"
    POMODORO_FOCUS = "pomodoro_focus"
    POMODORO_BREAK = "pomodoro_break"


class TimeEntry(Base):
    """
    Time tracking entry.

    WHAT: Records time a user spent on a task or project.

    HOW: ``duration_seconds`` always equals ``end_time - start_time`` in
    whole seconds; it is computed by the validator, never accepted from
    the caller. An entry is "orphaned" while no timesheet_entries row
    points at it.
    """

    __tablename__ = "time_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Task/project association
    task_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True
    )
    project_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )

    # Provenance
    timer_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TimerType.MANUAL.value
    )

    # Time tracking
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    # Description and billing
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_billable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, onupdate=utcnow, nullable=True
    )

    __table_args__ = (
        Index("ix_time_entries_org_id", "org_id"),
        Index("ix_time_entries_user_id", "user_id"),
        Index("ix_time_entries_task_id", "task_id"),
        Index("ix_time_entries_project_id", "project_id"),
        Index("ix_time_entries_start_time", "start_time"),
        CheckConstraint(
            "duration_seconds >= 0",
            name="ck_time_entries_positive_duration",
        ),
        CheckConstraint(
            "end_time > start_time",
            name="ck_time_entries_valid_time_range",
        ),
        CheckConstraint(
            "task_id IS NOT NULL OR project_id IS NOT NULL",
            name="ck_time_entries_task_or_project",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<TimeEntry(id={self.id}, "
            f"user_id={self.user_id}, "
            f"start={self.start_time}, "
            f"seconds={self.duration_seconds})>"
        )

    @property
    def duration_hours(self) -> float:
        """Get duration in hours."""
        return self.duration_seconds / 3600.0
