"""
Time Entry Pydantic Schemas.

WHAT: Request/Response models for logging time.

WHY: Pydantic schemas provide:
1. Request parsing (timestamps normalized to naive UTC)
2. Response serialization
3. OpenAPI documentation

Business rules (ordering of start/end, minimum duration, overlap) are
NOT checked here; they belong to the entry validator so manual and timer
entries get the same messages.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.core.clock import to_naive_utc
from app.models.time_entry import TimerType


# ============================================================================
# Request Schemas
# ============================================================================


class TimeEntryCreateRequest(BaseModel):
    """
    Request schema for logging a manual time entry.

    WHAT: An interval against a task or a project.

    WHY: ``confirmed`` is how the caller answers the "very long session"
    question after a 428 response.
    """

    start_time: datetime = Field(..., description="Start of work")
    end_time: datetime = Field(..., description="End of work")
    task_id: Optional[int] = Field(None, description="Task ID")
    project_id: Optional[int] = Field(None, description="Project ID")
    description: str = Field(default="", max_length=500, description="Work description")
    is_billable: bool = Field(default=True, description="Whether time is billable")
    confirmed: bool = Field(
        default=False, description="Confirm a session longer than 12 hours"
    )

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Store instants as naive UTC."""
        return to_naive_utc(v)


# ============================================================================
# Response Schemas
# ============================================================================


class TimeEntryResponse(BaseModel):
    """Response schema for a persisted time entry."""

    id: int
    org_id: int
    user_id: int
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    timer_type: TimerType
    start_time: datetime
    end_time: datetime
    duration_seconds: int
    description: str = ""
    is_billable: bool = True
    is_approved: bool = False

    model_config = {"from_attributes": True}


class LoggedEntryResponse(BaseModel):
    """
    Response schema after saving an entry.

    WHAT: The entry plus the confirmation text, e.g. "Time logged: 1h 30m".
    """

    entry: TimeEntryResponse
    duration_seconds: int
    message: str

    model_config = {"from_attributes": True}
