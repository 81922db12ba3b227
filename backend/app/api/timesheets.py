"""
Timesheet API Routes.

WHAT: REST endpoints for weekly consolidation and review.

HOW:
- GET /eligible lists the week's orphaned entries, all pre-selected
- POST /totals previews totals for a selection without writing
- POST creates the timesheet (header, entries, totals, or nothing)
- submit/approve/reject move it through review
- withdraw takes a submission back; DELETE removes a draft
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.core.clock import week_end_for
from app.core.deps import RequestContext, get_request_context, get_timesheet_service
from app.schemas.timesheet import (
    EligibleEntriesResponse,
    EligibleEntryResponse,
    SelectionTotalsRequest,
    SelectionTotalsResponse,
    TimesheetCreateRequest,
    TimesheetRejectRequest,
    TimesheetResponse,
)
from app.services.timesheet_service import EntrySelection, TimesheetService


router = APIRouter(prefix="/timesheets", tags=["timesheets"])


def _totals_response(selection: EntrySelection) -> SelectionTotalsResponse:
    totals = selection.totals()
    return SelectionTotalsResponse(
        entry_ids=selection.selected_ids(),
        total_seconds=totals.total_seconds,
        billable_seconds=totals.billable_seconds,
        total_hours=totals.total_hours,
        billable_hours=totals.billable_hours,
    )


@router.get("/eligible", response_model=EligibleEntriesResponse)
async def list_eligible_entries(
    week_start: date = Query(..., description="Monday of the week"),
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    """
    Entries of the week that belong to no timesheet yet.

    WHY: The picking step starts with everything selected.
    """
    selection = await service.load_selection(context.user_id, context.org_id, week_start)
    return EligibleEntriesResponse(
        week_start=week_start,
        week_end=week_end_for(week_start),
        entries=[EligibleEntryResponse.from_eligible(item) for item in selection.entries],
        totals=_totals_response(selection),
    )


@router.post("/totals", response_model=SelectionTotalsResponse)
async def preview_totals(
    request: SelectionTotalsRequest,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    """Totals of the picked entries; ids that are not eligible are ignored."""
    selection = await service.load_selection(
        context.user_id, context.org_id, request.week_start
    )
    selection.selected = set(request.entry_ids) & selection.all_ids
    return _totals_response(selection)


@router.post("", response_model=TimesheetResponse, status_code=status.HTTP_201_CREATED)
async def create_timesheet(
    request: TimesheetCreateRequest,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    timesheet = await service.create(
        user_id=context.user_id,
        org_id=context.org_id,
        week_start=request.week_start,
        selected_ids=request.entry_ids,
    )
    return TimesheetResponse.model_validate(timesheet)


@router.get("/{timesheet_id}", response_model=TimesheetResponse)
async def get_timesheet(
    timesheet_id: int,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    timesheet = await service.get_timesheet(timesheet_id, context.org_id)
    return TimesheetResponse.model_validate(timesheet)


@router.post("/{timesheet_id}/submit", response_model=TimesheetResponse)
async def submit_timesheet(
    timesheet_id: int,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    timesheet = await service.submit(timesheet_id, context.org_id, context.user_id)
    return TimesheetResponse.model_validate(timesheet)


@router.post("/{timesheet_id}/approve", response_model=TimesheetResponse)
async def approve_timesheet(
    timesheet_id: int,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    timesheet = await service.approve(timesheet_id, context.org_id, context.user_id)
    return TimesheetResponse.model_validate(timesheet)


@router.post("/{timesheet_id}/reject", response_model=TimesheetResponse)
async def reject_timesheet(
    timesheet_id: int,
    request: TimesheetRejectRequest,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    timesheet = await service.reject(
        timesheet_id, context.org_id, context.user_id, request.reason
    )
    return TimesheetResponse.model_validate(timesheet)


@router.post("/{timesheet_id}/withdraw", response_model=TimesheetResponse)
async def withdraw_timesheet(
    timesheet_id: int,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
):
    """Back to draft before a reviewer picks it up (owner only)."""
    timesheet = await service.withdraw(timesheet_id, context.org_id, context.user_id)
    return TimesheetResponse.model_validate(timesheet)


@router.delete("/{timesheet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_timesheet(
    timesheet_id: int,
    context: RequestContext = Depends(get_request_context),
    service: TimesheetService = Depends(get_timesheet_service),
) -> None:
    """
    Delete a draft timesheet.

    WHAT: Its entries are kept and become eligible again for the week.

    Raises:
        TimesheetNotFoundError (404), AuthorizationError (403),
        InvalidStateError (409): Not a draft
    """
    await service.delete_draft(timesheet_id, context.org_id, context.user_id)
