"""
Time Entry Data Access Object (DAO).

WHAT: Database operations for the TimeEntry model.

WHY: The overlap check, the monthly count behind the quota check, and the
orphaned-entry listing are the store's authoritative answers. Keeping the
queries here means the validator and the timesheet service only ever see
their results.

HOW: Extends BaseDAO with time-specific queries:
- Half-open interval overlap per user
- Entries started since an instant (monthly quota)
- Entries of a week not linked to any timesheet
- Per-task duration sums
- Approval flag for the members of an approved timesheet
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.dao.base import BaseDAO
from app.models.time_entry import TimeEntry, TimerType
from app.models.timesheet import TimesheetEntry


class TimeEntryDAO(BaseDAO[TimeEntry]):
    """
    Data Access Object for TimeEntry model.

    WHAT: Provides CRUD and query operations for time entries.

    HOW: Extends BaseDAO with time-specific methods.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize TimeEntryDAO.

        Args:
            session: Async database session
        """
        super().__init__(TimeEntry, session)

    async def create_entry(
        self,
        org_id: int,
        user_id: int,
        start_time: datetime,
        end_time: datetime,
        duration_seconds: int,
        task_id: Optional[int] = None,
        project_id: Optional[int] = None,
        timer_type: TimerType = TimerType.MANUAL,
        description: str = "",
        is_billable: bool = True,
    ) -> TimeEntry:
        """
        Create a new time entry.

        WHAT: Persists an already validated entry.

        Args:
            org_id: Organization ID
            user_id: User who worked
            start_time: Start instant (naive UTC)
            end_time: End instant (naive UTC)
            duration_seconds: Whole seconds between start and end
            task_id: Optional task ID
            project_id: Optional project ID
            timer_type: Provenance of the entry
            description: Work description
            is_billable: Whether this time is billable

        Returns:
            Created TimeEntry
        """
        return await self.create(
            org_id=org_id,
            user_id=user_id,
            task_id=task_id,
            project_id=project_id,
            timer_type=TimerType(timer_type).value,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=duration_seconds,
            description=description,
            is_billable=is_billable,
        )

    async def has_overlap(
        self,
        user_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> bool:
        """
        Check whether the user already has time inside ``[start, end)``.

        WHAT: Two half-open intervals overlap when each starts before the
        other ends. Touching intervals (one ends when the next starts) do
        not overlap.

        Args:
            user_id: User ID
            start_time: Candidate start
            end_time: Candidate end

        Returns:
            True if an overlapping entry exists
        """
        result = await self.session.execute(
            select(TimeEntry.id)
            .where(
                TimeEntry.user_id == user_id,
                TimeEntry.start_time < end_time,
                TimeEntry.end_time > start_time,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def count_started_since(self, user_id: int, since: datetime) -> int:
        """
        Count a user's entries that started at or after ``since``.

        Args:
            user_id: User ID
            since: Lower bound (inclusive)

        Returns:
            Number of entries
        """
        result = await self.session.execute(
            select(func.count(TimeEntry.id)).where(
                TimeEntry.user_id == user_id,
                TimeEntry.start_time >= since,
            )
        )
        return result.scalar_one()

    async def get_orphaned_for_week(
        self,
        user_id: int,
        org_id: int,
        week_start: date,
    ) -> List[TimeEntry]:
        """
        Get a week's entries that belong to no timesheet.

        WHAT: Entries whose start falls on one of the seven days beginning
        at ``week_start`` and that have zero timesheet associations.

        Args:
            user_id: User ID
            org_id: Organization ID
            week_start: Monday of the week

        Returns:
            Orphaned entries ordered by start time
        """
        window_start = datetime.combine(week_start, time.min)
        window_end = window_start + timedelta(days=7)
        linked = select(TimesheetEntry.time_entry_id)

        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.org_id == org_id,
                TimeEntry.user_id == user_id,
                TimeEntry.start_time >= window_start,
                TimeEntry.start_time < window_end,
                TimeEntry.id.not_in(linked),
            )
            .order_by(TimeEntry.start_time.asc())
        )
        return list(result.scalars().all())

    async def mark_approved_for_timesheet(self, timesheet_id: int) -> int:
        """
        Flag every entry linked to a timesheet as approved.

        Args:
            timesheet_id: Timesheet ID

        Returns:
            Number of entries flagged
        """
        members = select(TimesheetEntry.time_entry_id).where(
            TimesheetEntry.timesheet_id == timesheet_id
        )
        result = await self.session.execute(
            update(TimeEntry)
            .where(TimeEntry.id.in_(members))
            .values(is_approved=True)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()
        return result.rowcount

    async def sum_task_seconds(self, task_id: int) -> int:
        """
        Total logged seconds for a task.

        Args:
            task_id: Task ID

        Returns:
            Sum of duration_seconds, 0 when nothing is logged
        """
        result = await self.session.execute(
            select(func.coalesce(func.sum(TimeEntry.duration_seconds), 0)).where(
                TimeEntry.task_id == task_id
            )
        )
        return int(result.scalar_one())
