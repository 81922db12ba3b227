"""
Timesheet Pydantic Schemas.

WHAT: Request/Response models for weekly consolidation and review.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.time_entry import TimerType
from app.models.timesheet import TimesheetStatus
from app.services.timesheet_service import EligibleEntry


# ============================================================================
# Request Schemas
# ============================================================================


class TimesheetCreateRequest(BaseModel):
    """
    Request schema for creating a timesheet.

    WHAT: The Monday of the week and the picked entries. An empty list is
    accepted here and refused by the service with a clear message.
    """

    week_start: date = Field(..., description="Monday of the week")
    entry_ids: List[int] = Field(default_factory=list, description="Selected entry IDs")


class SelectionTotalsRequest(BaseModel):
    """Request schema for previewing the totals of a selection."""

    week_start: date = Field(..., description="Monday of the week")
    entry_ids: List[int] = Field(default_factory=list, description="Selected entry IDs")


class TimesheetRejectRequest(BaseModel):
    """
    Request schema for rejecting a timesheet.

    WHY: Provides feedback to the owner. Blank reasons are refused by the
    service after trimming.
    """

    reason: str = Field(..., description="Rejection reason")


# ============================================================================
# Response Schemas
# ============================================================================


class TaskRefResponse(BaseModel):
    task_id: int
    code: str
    title: str
    project_id: Optional[int] = None

    model_config = {"from_attributes": True}


class EligibleEntryResponse(BaseModel):
    """An orphaned entry offered for inclusion in a timesheet."""

    id: int
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    timer_type: TimerType
    start_time: datetime
    end_time: datetime
    duration_seconds: int
    description: str = ""
    is_billable: bool = True
    task: Optional[TaskRefResponse] = None

    @classmethod
    def from_eligible(cls, item: EligibleEntry) -> "EligibleEntryResponse":
        entry = item.entry
        return cls(
            id=entry.id,
            task_id=entry.task_id,
            project_id=entry.project_id,
            timer_type=entry.timer_type,
            start_time=entry.start_time,
            end_time=entry.end_time,
            duration_seconds=entry.duration_seconds,
            description=entry.description,
            is_billable=entry.is_billable,
            task=TaskRefResponse.model_validate(item.task) if item.task else None,
        )


class SelectionTotalsResponse(BaseModel):
    """Totals of the selected entries."""

    entry_ids: List[int]
    total_seconds: int
    billable_seconds: int
    total_hours: Decimal
    billable_hours: Decimal


class EligibleEntriesResponse(BaseModel):
    """
    Response schema for the picking step.

    WHAT: Every eligible entry starts selected, so ``totals`` covers them all.
    """

    week_start: date
    week_end: date
    entries: List[EligibleEntryResponse]
    totals: SelectionTotalsResponse


class TimesheetResponse(BaseModel):
    """Response schema for a timesheet."""

    id: int
    org_id: int
    user_id: int
    week_start_date: date
    week_end_date: date
    status: TimesheetStatus
    total_hours: Decimal
    billable_hours: Decimal
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    entry_ids: List[int] = Field(default_factory=list)

    model_config = {"from_attributes": True}
