"""
Time tracking persistence gateway.

WHAT: The interface the timer, validator and timesheet services use to
reach persisted state, and its SQL implementation.

WHY: The business rules only need a handful of questions answered
(does this overlap? is there quota left? which entries are orphaned?) and
a handful of writes. Putting them behind an abstract store:
1. Keeps SQL out of the services
2. Lets unit tests run the rules against an in-memory fake
3. Gives one place where driver errors become PersistenceError

HOW: ``TimeTrackingStore`` and ``TaskCatalog`` are ABCs in the same shape
as the email provider abstraction. ``SqlTimeTrackingStore`` implements
both over the DAOs on a single AsyncSession. Every method translates
SQLAlchemyError into PersistenceError; a duplicate week header becomes
TimesheetAlreadyExistsError.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, month_start, seconds_to_hours, utcnow
from app.core.exceptions import PersistenceError, TimesheetAlreadyExistsError
from app.dao.subscription import SubscriptionDAO
from app.dao.task import TaskDAO
from app.dao.time_entry import TimeEntryDAO
from app.dao.timesheet import TimesheetDAO, TimesheetEntryDAO
from app.models.subscription import monthly_entry_limit
from app.models.time_entry import TimeEntry, TimerType
from app.models.timesheet import Timesheet, TimesheetStatus
from app.services.entry_validator import ValidatedEntry

logger = logging.getLogger(__name__)


# ============================================================================
# Value types
# ============================================================================


@dataclass(frozen=True)
class TaskRef:
    """Display data of a task, as the catalog resolves it."""

    task_id: int
    code: str
    title: str
    project_id: Optional[int] = None


@dataclass
class StoredEntry:
    """A persisted time entry."""

    id: int
    org_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    duration_seconds: int
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    description: str = ""
    is_billable: bool = True
    timer_type: TimerType = TimerType.MANUAL
    is_approved: bool = False

    @classmethod
    def from_model(cls, entry: TimeEntry) -> "StoredEntry":
        return cls(
            id=entry.id,
            org_id=entry.org_id,
            user_id=entry.user_id,
            start_time=entry.start_time,
            end_time=entry.end_time,
            duration_seconds=entry.duration_seconds,
            task_id=entry.task_id,
            project_id=entry.project_id,
            description=entry.description or "",
            is_billable=entry.is_billable,
            timer_type=TimerType(entry.timer_type),
            is_approved=bool(entry.is_approved),
        )


@dataclass
class TimesheetHours:
    """Seconds logged by a timesheet's member entries."""

    total_seconds: int = 0
    billable_seconds: int = 0

    @property
    def total_hours(self) -> Decimal:
        return seconds_to_hours(self.total_seconds)

    @property
    def billable_hours(self) -> Decimal:
        return seconds_to_hours(self.billable_seconds)


@dataclass
class TimesheetRecord:
    """A persisted timesheet header and, when loaded, its member entry ids."""

    id: int
    org_id: int
    user_id: int
    week_start_date: date
    week_end_date: date
    status: TimesheetStatus = TimesheetStatus.DRAFT
    total_hours: Decimal = Decimal("0")
    billable_hours: Decimal = Decimal("0")
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    entry_ids: List[int] = field(default_factory=list)

    @classmethod
    def from_model(
        cls, timesheet: Timesheet, entry_ids: Sequence[int] = ()
    ) -> "TimesheetRecord":
        return cls(
            id=timesheet.id,
            org_id=timesheet.org_id,
            user_id=timesheet.user_id,
            week_start_date=timesheet.week_start_date,
            week_end_date=timesheet.week_end_date,
            status=TimesheetStatus(timesheet.status),
            total_hours=Decimal(timesheet.total_hours or 0),
            billable_hours=Decimal(timesheet.billable_hours or 0),
            submitted_at=timesheet.submitted_at,
            reviewed_by=timesheet.reviewed_by,
            reviewed_at=timesheet.reviewed_at,
            rejection_reason=timesheet.rejection_reason,
            entry_ids=list(entry_ids),
        )


# ============================================================================
# Abstract interfaces
# ============================================================================


class TimeTrackingStore(ABC):
    """
    Abstract persistence service for time entries and timesheets.

    WHY: Overlap, quota and header uniqueness are answered by the store,
    never derived locally, so concurrent sessions of the same user cannot
    both pass a check that only one of them should.
    """

    @abstractmethod
    async def check_overlap(self, user_id: int, start: datetime, end: datetime) -> bool:
        """True if the user already has an entry intersecting ``[start, end)``."""
        pass

    @abstractmethod
    async def check_monthly_limit(self, org_id: int, user_id: int) -> bool:
        """True if the organization's plan allows another entry this month."""
        pass

    @abstractmethod
    async def insert_time_entry(self, entry: ValidatedEntry) -> StoredEntry:
        pass

    @abstractmethod
    async def recompute_task_hours(self, task_id: int) -> None:
        pass

    @abstractmethod
    async def list_orphaned_entries(
        self, user_id: int, org_id: int, week_start: date
    ) -> List[StoredEntry]:
        """Entries starting within the week that belong to no timesheet."""
        pass

    @abstractmethod
    async def insert_timesheet(
        self, org_id: int, user_id: int, week_start: date, week_end: date
    ) -> TimesheetRecord:
        """
        Insert a draft header.

        Raises:
            TimesheetAlreadyExistsError: The user already has one for the week
        """
        pass

    @abstractmethod
    async def insert_timesheet_entries(
        self, timesheet_id: int, entry_ids: Sequence[int]
    ) -> int:
        pass

    @abstractmethod
    async def compute_timesheet_hours(self, timesheet_id: int) -> TimesheetHours:
        pass

    @abstractmethod
    async def update_timesheet_hours(
        self, timesheet_id: int, hours: TimesheetHours
    ) -> TimesheetRecord:
        pass

    @abstractmethod
    async def delete_timesheet(self, timesheet_id: int) -> None:
        """Remove a header and its associations, freeing its entries."""
        pass

    @abstractmethod
    async def get_timesheet(
        self, timesheet_id: int, org_id: int
    ) -> Optional[TimesheetRecord]:
        pass

    @abstractmethod
    async def count_timesheet_entries(self, timesheet_id: int) -> int:
        pass

    @abstractmethod
    async def update_timesheet_status(
        self,
        timesheet_id: int,
        status: TimesheetStatus,
        *,
        submitted_at: Optional[datetime] = None,
        reviewed_by: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> TimesheetRecord:
        pass

    @abstractmethod
    async def reopen_timesheet(self, timesheet_id: int) -> TimesheetRecord:
        """Back to draft with ``submitted_at`` and the rejection reason cleared."""
        pass

    @abstractmethod
    async def mark_entries_approved(self, timesheet_id: int) -> int:
        """Flag the timesheet's member entries as approved."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """
        Make everything written so far durable.

        WHY: Callers holding in-memory state (a stopped timer) only drop it
        once the write it produced can no longer be rolled back.
        """
        pass


class TaskCatalog(ABC):
    """Read-only lookup of task display data."""

    @abstractmethod
    async def resolve_task_ref(self, task_id: int, org_id: int) -> Optional[TaskRef]:
        pass


# ============================================================================
# SQL implementation
# ============================================================================


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store operation %s failed: %s", operation, exc)
        raise PersistenceError(
            message="Could not reach the time tracking store",
            operation=operation,
        ) from exc


class SqlTimeTrackingStore(TimeTrackingStore, TaskCatalog):
    """
    TimeTrackingStore and TaskCatalog over SQLAlchemy DAOs.

    WHAT: All reads and writes happen on the request's AsyncSession; the
    session dependency commits on success and rolls back on error.
    ``commit()`` lets a service commit earlier, before it drops state it
    holds in memory.

    Args:
        session: Async database session
        clock: Source of "now" for the monthly quota window
    """

    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self.session = session
        self.clock = clock
        self.entry_dao = TimeEntryDAO(session)
        self.timesheet_dao = TimesheetDAO(session)
        self.timesheet_entry_dao = TimesheetEntryDAO(session)
        self.task_dao = TaskDAO(session)
        self.subscription_dao = SubscriptionDAO(session)

    async def check_overlap(self, user_id: int, start: datetime, end: datetime) -> bool:
        with _translate_errors("check_overlap"):
            return await self.entry_dao.has_overlap(user_id, start, end)

    async def check_monthly_limit(self, org_id: int, user_id: int) -> bool:
        with _translate_errors("check_monthly_limit"):
            plan = await self.subscription_dao.get_plan(org_id)
            limit = monthly_entry_limit(plan)
            if limit is None:
                return True
            count = await self.entry_dao.count_started_since(
                user_id, month_start(self.clock())
            )
            return count < limit

    async def insert_time_entry(self, entry: ValidatedEntry) -> StoredEntry:
        candidate = entry.candidate
        with _translate_errors("insert_time_entry"):
            created = await self.entry_dao.create_entry(
                org_id=candidate.org_id,
                user_id=candidate.user_id,
                start_time=candidate.start,
                end_time=candidate.end,
                duration_seconds=entry.duration_seconds,
                task_id=candidate.task_id,
                project_id=candidate.project_id,
                timer_type=candidate.timer_type,
                description=(candidate.description or "").strip(),
                is_billable=candidate.is_billable,
            )
        return StoredEntry.from_model(created)

    async def recompute_task_hours(self, task_id: int) -> None:
        with _translate_errors("recompute_task_hours"):
            await self.task_dao.recompute_actual_hours(task_id)

    async def list_orphaned_entries(
        self, user_id: int, org_id: int, week_start: date
    ) -> List[StoredEntry]:
        with _translate_errors("list_orphaned_entries"):
            entries = await self.entry_dao.get_orphaned_for_week(user_id, org_id, week_start)
        return [StoredEntry.from_model(entry) for entry in entries]

    async def insert_timesheet(
        self, org_id: int, user_id: int, week_start: date, week_end: date
    ) -> TimesheetRecord:
        try:
            timesheet = await self.timesheet_dao.create_timesheet(
                org_id=org_id,
                user_id=user_id,
                week_start_date=week_start,
                week_end_date=week_end,
            )
        except IntegrityError as exc:
            raise TimesheetAlreadyExistsError(
                user_id=user_id, week_start=week_start
            ) from exc
        except SQLAlchemyError as exc:
            logger.error("Store operation insert_timesheet failed: %s", exc)
            raise PersistenceError(
                message="Could not reach the time tracking store",
                operation="insert_timesheet",
            ) from exc
        return TimesheetRecord.from_model(timesheet)

    async def insert_timesheet_entries(
        self, timesheet_id: int, entry_ids: Sequence[int]
    ) -> int:
        with _translate_errors("insert_timesheet_entries"):
            return await self.timesheet_entry_dao.add_entries(timesheet_id, entry_ids)

    async def compute_timesheet_hours(self, timesheet_id: int) -> TimesheetHours:
        with _translate_errors("compute_timesheet_hours"):
            totals = await self.timesheet_dao.calculate_hours(timesheet_id)
        return TimesheetHours(
            total_seconds=totals["total_seconds"],
            billable_seconds=totals["billable_seconds"],
        )

    async def update_timesheet_hours(
        self, timesheet_id: int, hours: TimesheetHours
    ) -> TimesheetRecord:
        with _translate_errors("update_timesheet_hours"):
            timesheet = await self.timesheet_dao.update_hours(
                timesheet_id, hours.total_hours, hours.billable_hours
            )
            if timesheet is None:
                raise PersistenceError(
                    message="Timesheet disappeared while updating totals",
                    timesheet_id=timesheet_id,
                )
            entry_ids = await self.timesheet_entry_dao.get_entry_ids(timesheet_id)
        return TimesheetRecord.from_model(timesheet, entry_ids)

    async def delete_timesheet(self, timesheet_id: int) -> None:
        with _translate_errors("delete_timesheet"):
            await self.timesheet_dao.delete_with_entries(timesheet_id)

    async def get_timesheet(
        self, timesheet_id: int, org_id: int
    ) -> Optional[TimesheetRecord]:
        with _translate_errors("get_timesheet"):
            timesheet = await self.timesheet_dao.get_by_id_and_org(timesheet_id, org_id)
            if timesheet is None:
                return None
            entry_ids = await self.timesheet_entry_dao.get_entry_ids(timesheet_id)
        return TimesheetRecord.from_model(timesheet, entry_ids)

    async def count_timesheet_entries(self, timesheet_id: int) -> int:
        with _translate_errors("count_timesheet_entries"):
            return await self.timesheet_entry_dao.count_for_timesheet(timesheet_id)

    async def update_timesheet_status(
        self,
        timesheet_id: int,
        status: TimesheetStatus,
        *,
        submitted_at: Optional[datetime] = None,
        reviewed_by: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> TimesheetRecord:
        with _translate_errors("update_timesheet_status"):
            timesheet = await self.timesheet_dao.update_status(
                timesheet_id,
                status,
                submitted_at=submitted_at,
                reviewed_by=reviewed_by,
                reviewed_at=reviewed_at,
                rejection_reason=rejection_reason,
            )
            if timesheet is None:
                raise PersistenceError(
                    message="Timesheet disappeared while updating status",
                    timesheet_id=timesheet_id,
                )
            entry_ids = await self.timesheet_entry_dao.get_entry_ids(timesheet_id)
        return TimesheetRecord.from_model(timesheet, entry_ids)

    async def reopen_timesheet(self, timesheet_id: int) -> TimesheetRecord:
        with _translate_errors("reopen_timesheet"):
            timesheet = await self.timesheet_dao.reopen(timesheet_id)
            if timesheet is None:
                raise PersistenceError(
                    message="Timesheet disappeared while reopening",
                    timesheet_id=timesheet_id,
                )
            entry_ids = await self.timesheet_entry_dao.get_entry_ids(timesheet_id)
        return TimesheetRecord.from_model(timesheet, entry_ids)

    async def mark_entries_approved(self, timesheet_id: int) -> int:
        with _translate_errors("mark_entries_approved"):
            return await self.entry_dao.mark_approved_for_timesheet(timesheet_id)

    async def commit(self) -> None:
        with _translate_errors("commit"):
            await self.session.commit()

    async def resolve_task_ref(self, task_id: int, org_id: int) -> Optional[TaskRef]:
        with _translate_errors("resolve_task_ref"):
            task = await self.task_dao.get_by_id_and_org(task_id, org_id)
        if task is None:
            return None
        return TaskRef(
            task_id=task.id,
            code=task.code,
            title=task.title,
            project_id=task.project_id,
        )
