"""
Time Entry API Routes.

WHAT: REST endpoint for logging time manually.

HOW: Thin handler; validation, persistence and the task-hours refresh
happen in TimeEntryService. A 428 response means the session is longer
than 12 hours and the caller should resend with ``confirmed: true``.
"""

from fastapi import APIRouter, Depends, status

from app.core.deps import RequestContext, get_request_context, get_time_entry_service
from app.schemas.time_entry import LoggedEntryResponse, TimeEntryCreateRequest
from app.services.time_entry_service import TimeEntryService


router = APIRouter(prefix="/time-entries", tags=["time-entries"])


@router.post("", response_model=LoggedEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_time_entry(
    request: TimeEntryCreateRequest,
    context: RequestContext = Depends(get_request_context),
    service: TimeEntryService = Depends(get_time_entry_service),
):
    """
    Log a manual time entry.

    WHAT: Records an interval against a task or project.
    """
    logged = await service.log_manual_entry(
        org_id=context.org_id,
        user_id=context.user_id,
        start=request.start_time,
        end=request.end_time,
        task_id=request.task_id,
        project_id=request.project_id,
        description=request.description,
        is_billable=request.is_billable,
        confirmed=request.confirmed,
    )
    return LoggedEntryResponse.model_validate(logged)
