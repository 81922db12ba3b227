"""
FastAPI dependencies for request context and services.

WHY: Route handlers stay thin. They ask for a service and the request's
caller; wiring the session, store, clock and timer registry happens here
once, and tests override a single dependency to swap any of them.

Authentication is out of scope: the organization and user arrive as
``X-Organization-Id`` and ``X-User-Id`` headers set by the gateway in
front of this service.
"""

from dataclasses import dataclass

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utcnow
from app.db.session import get_db
from app.services.time_entry_service import TimeEntryService
from app.services.time_store import SqlTimeTrackingStore
from app.services.timer import Timer, TimerRegistry, timer_registry
from app.services.timesheet_service import TimesheetService


@dataclass(frozen=True)
class RequestContext:
    """Who is calling, on behalf of which organization."""

    org_id: int
    user_id: int


async def get_request_context(
    x_organization_id: int = Header(..., description="Organization of the caller"),
    x_user_id: int = Header(..., description="Calling user"),
) -> RequestContext:
    return RequestContext(org_id=x_organization_id, user_id=x_user_id)


def get_clock() -> Clock:
    return utcnow


def get_timer_registry() -> TimerRegistry:
    return timer_registry


async def get_store(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SqlTimeTrackingStore:
    return SqlTimeTrackingStore(db, clock=clock)


async def get_timer(
    context: RequestContext = Depends(get_request_context),
    registry: TimerRegistry = Depends(get_timer_registry),
) -> Timer:
    """The caller's timer, shared across organizations, created idle on first use."""
    return registry.get(context.user_id)


async def get_time_entry_service(
    store: SqlTimeTrackingStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> TimeEntryService:
    return TimeEntryService(store, clock=clock)


async def get_timesheet_service(
    store: SqlTimeTrackingStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> TimesheetService:
    return TimesheetService(store, store, clock=clock)
