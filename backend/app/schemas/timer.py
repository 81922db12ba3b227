"""
Timer Pydantic Schemas.

WHAT: Request/Response models for the live timer endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.clock import format_duration
from app.models.time_entry import TimerType
from app.services.timer import Timer, TimerMode


# ============================================================================
# Request Schemas
# ============================================================================


class TimerStartRequest(BaseModel):
    """Request schema for starting a timer."""

    kind: TimerType = Field(default=TimerType.QUICK_TIMER, description="Timer kind")
    target_seconds: Optional[int] = Field(
        None, description="Focus target in seconds (pomodoro timers)"
    )


class TimerUpdateRequest(BaseModel):
    """
    Request schema for editing a timer.

    WHY: Only the fields present in the body are applied, so clearing the
    task (``"task_id": null``) differs from not mentioning it.
    """

    task_id: Optional[int] = Field(None, description="Task ID")
    project_id: Optional[int] = Field(None, description="Project ID")
    description: Optional[str] = Field(None, description="Work description")
    is_billable: Optional[bool] = Field(None, description="Whether billable")


class TimerSaveRequest(BaseModel):
    """Request schema for saving a stopped timer."""

    confirmed: bool = Field(
        default=False, description="Confirm a session longer than 12 hours"
    )


# ============================================================================
# Response Schemas
# ============================================================================


class StoppedTimerResponse(BaseModel):
    """The interval a stopped timer will save."""

    kind: TimerType
    start: datetime
    end: datetime
    duration_seconds: int
    formatted_duration: str


class TimerResponse(BaseModel):
    """
    Response schema for the current timer.

    WHAT: Elapsed and remaining times are computed at response time.
    """

    mode: TimerMode
    org_id: Optional[int] = Field(None, description="Organization the timer was started in")
    kind: Optional[TimerType] = None
    started_at: Optional[datetime] = None
    accumulated_seconds: int = 0
    elapsed_seconds: int = 0
    target_seconds: Optional[int] = None
    remaining_seconds: Optional[int] = None
    is_target_reached: bool = False
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    description: str = ""
    is_billable: bool = True
    pending: Optional[StoppedTimerResponse] = None

    @classmethod
    def from_timer(cls, timer: Timer) -> "TimerResponse":
        pending = None
        if timer.pending is not None:
            pending = StoppedTimerResponse(
                kind=timer.pending.kind,
                start=timer.pending.start,
                end=timer.pending.end,
                duration_seconds=timer.pending.duration_seconds,
                formatted_duration=format_duration(timer.pending.duration_seconds),
            )
        return cls(
            mode=timer.mode,
            org_id=timer.org_id,
            kind=timer.kind,
            started_at=timer.started_at,
            accumulated_seconds=timer.accumulated_seconds,
            elapsed_seconds=timer.elapsed_seconds,
            target_seconds=timer.target_seconds,
            remaining_seconds=timer.remaining_seconds,
            is_target_reached=timer.is_target_reached,
            task_id=timer.task_id,
            project_id=timer.project_id,
            description=timer.description,
            is_billable=timer.is_billable,
            pending=pending,
        )
