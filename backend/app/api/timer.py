"""
Timer API Routes.

WHAT: REST endpoints driving the caller's live timer.

WHY: The timer lives in process memory, one per user across every
organization. A timer started in one organization blocks starting another
in a different one until it is stopped and saved or discarded. Every
endpoint returns the full timer view so clients never have to compute
elapsed time themselves.

HOW:
- start/pause/resume/stop/reset map one-to-one onto Timer transitions
- PATCH edits task, description and billable flag
- save validates and persists the stopped interval, then resets
- discard drops it
- reading, reset, save and discard release an idle timer from the registry
"""

from fastapi import APIRouter, Depends, status

from app.core.deps import (
    RequestContext,
    get_request_context,
    get_time_entry_service,
    get_timer,
    get_timer_registry,
)
from app.schemas.time_entry import LoggedEntryResponse
from app.schemas.timer import (
    TimerResponse,
    TimerSaveRequest,
    TimerStartRequest,
    TimerUpdateRequest,
)
from app.services.time_entry_service import TimeEntryService
from app.services.timer import Timer, TimerRegistry


router = APIRouter(prefix="/timer", tags=["timer"])


@router.get("", response_model=TimerResponse)
async def get_timer_state(
    context: RequestContext = Depends(get_request_context),
    timer: Timer = Depends(get_timer),
    registry: TimerRegistry = Depends(get_timer_registry),
):
    """Current timer with elapsed time computed now."""
    response = TimerResponse.from_timer(timer)
    registry.release(context.user_id)
    return response


@router.post("/start", response_model=TimerResponse)
async def start_timer(
    request: TimerStartRequest,
    context: RequestContext = Depends(get_request_context),
    timer: Timer = Depends(get_timer),
):
    """
    Start a timer in the caller's organization.

    WHY: Returns 409 if a timer of another kind, or in another
    organization, is already active.
    """
    timer.start(
        request.kind,
        target_seconds=request.target_seconds,
        org_id=context.org_id,
    )
    return TimerResponse.from_timer(timer)


@router.post("/pause", response_model=TimerResponse)
async def pause_timer(timer: Timer = Depends(get_timer)):
    timer.pause()
    return TimerResponse.from_timer(timer)


@router.post("/resume", response_model=TimerResponse)
async def resume_timer(timer: Timer = Depends(get_timer)):
    timer.resume()
    return TimerResponse.from_timer(timer)


@router.post("/stop", response_model=TimerResponse)
async def stop_timer(timer: Timer = Depends(get_timer)):
    """Stop measuring; the interval stays pending until saved or discarded."""
    timer.stop()
    return TimerResponse.from_timer(timer)


@router.post("/reset", response_model=TimerResponse)
async def reset_timer(
    context: RequestContext = Depends(get_request_context),
    timer: Timer = Depends(get_timer),
    registry: TimerRegistry = Depends(get_timer_registry),
):
    timer.reset()
    registry.release(context.user_id)
    return TimerResponse.from_timer(timer)


@router.patch("", response_model=TimerResponse)
async def update_timer(
    request: TimerUpdateRequest,
    timer: Timer = Depends(get_timer),
):
    """Apply only the fields present in the body."""
    fields = request.model_fields_set
    if "task_id" in fields or "project_id" in fields:
        timer.update_task(request.task_id, request.project_id)
    if "description" in fields:
        timer.update_description(request.description or "")
    if "is_billable" in fields and request.is_billable is not None:
        timer.update_billable(request.is_billable)
    return TimerResponse.from_timer(timer)


@router.post("/save", response_model=LoggedEntryResponse, status_code=status.HTTP_201_CREATED)
async def save_timer(
    request: TimerSaveRequest,
    context: RequestContext = Depends(get_request_context),
    timer: Timer = Depends(get_timer),
    registry: TimerRegistry = Depends(get_timer_registry),
    service: TimeEntryService = Depends(get_time_entry_service),
):
    """
    Save the stopped timer as a time entry.

    WHY: On any failure (including 428 for an unconfirmed long session)
    the stopped interval stays pending so the caller can fix and retry.
    The timer is only reset once the entry is committed.
    """
    logged = await service.save_timer_entry(
        timer,
        org_id=context.org_id,
        user_id=context.user_id,
        confirmed=request.confirmed,
    )
    registry.release(context.user_id)
    return LoggedEntryResponse.model_validate(logged)


@router.post("/discard", response_model=TimerResponse)
async def discard_timer(
    context: RequestContext = Depends(get_request_context),
    timer: Timer = Depends(get_timer),
    registry: TimerRegistry = Depends(get_timer_registry),
    service: TimeEntryService = Depends(get_time_entry_service),
):
    service.discard_timer_entry(timer)
    registry.release(context.user_id)
    return TimerResponse.from_timer(timer)
