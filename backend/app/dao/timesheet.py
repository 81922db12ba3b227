"""
Timesheet Data Access Objects (DAO).

WHAT: Database operations for Timesheet headers and their entry
associations.

WHY: Creating a timesheet touches two tables and an aggregate. Each step
is a separate DAO call so the timesheet service can order them and undo
the header when a later step fails.

HOW:
- TimesheetDAO: header insert, hour totals, status updates, reopening, removal
- TimesheetEntryDAO: association rows
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, func, case, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import seconds_to_hours
from app.dao.base import BaseDAO
from app.models.time_entry import TimeEntry
from app.models.timesheet import Timesheet, TimesheetEntry, TimesheetStatus


class TimesheetDAO(BaseDAO[Timesheet]):
    """
    Data Access Object for Timesheet headers.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Timesheet, session)

    async def create_timesheet(
        self,
        org_id: int,
        user_id: int,
        week_start_date: date,
        week_end_date: date,
    ) -> Timesheet:
        """
        Insert a draft timesheet header with zero totals.

        Args:
            org_id: Organization ID
            user_id: Owner
            week_start_date: Monday of the week
            week_end_date: Sunday of the week

        Returns:
            Created Timesheet

        Raises:
            IntegrityError: If the user already has a timesheet for the week
        """
        return await self.create(
            org_id=org_id,
            user_id=user_id,
            week_start_date=week_start_date,
            week_end_date=week_end_date,
            status=TimesheetStatus.DRAFT.value,
            total_hours=Decimal("0"),
            billable_hours=Decimal("0"),
        )

    async def calculate_hours(self, timesheet_id: int) -> Dict[str, Any]:
        """
        Aggregate hours over the entries linked to a timesheet.

        WHAT: Sums only member entries, never every entry of the week.

        Args:
            timesheet_id: Timesheet ID

        Returns:
            Dict with total/billable seconds and hours
        """
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(TimeEntry.duration_seconds), 0).label("total_seconds"),
                func.coalesce(
                    func.sum(
                        case(
                            (TimeEntry.is_billable.is_(True), TimeEntry.duration_seconds),
                            else_=0,
                        )
                    ),
                    0,
                ).label("billable_seconds"),
            )
            .select_from(TimesheetEntry)
            .join(TimeEntry, TimeEntry.id == TimesheetEntry.time_entry_id)
            .where(TimesheetEntry.timesheet_id == timesheet_id)
        )
        row = result.one()
        total_seconds = int(row.total_seconds or 0)
        billable_seconds = int(row.billable_seconds or 0)

        return {
            "total_seconds": total_seconds,
            "billable_seconds": billable_seconds,
            "total_hours": seconds_to_hours(total_seconds),
            "billable_hours": seconds_to_hours(billable_seconds),
        }

    async def update_hours(
        self,
        timesheet_id: int,
        total_hours: Decimal,
        billable_hours: Decimal,
    ) -> Optional[Timesheet]:
        """
        Write computed totals back onto the header.

        Args:
            timesheet_id: Timesheet ID
            total_hours: Total hours of member entries
            billable_hours: Billable hours of member entries

        Returns:
            Updated Timesheet or None
        """
        timesheet = await self.get_by_id(timesheet_id)
        if not timesheet:
            return None

        timesheet.total_hours = total_hours
        timesheet.billable_hours = billable_hours
        await self.session.flush()
        await self.session.refresh(timesheet)
        return timesheet

    async def update_status(
        self,
        timesheet_id: int,
        status: TimesheetStatus,
        submitted_at: Optional[datetime] = None,
        reviewed_by: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> Optional[Timesheet]:
        """
        Move a timesheet to a new review status.

        WHAT: Stamps whichever review fields are given; the caller has
        already checked the transition is legal.

        Returns:
            Updated Timesheet or None
        """
        timesheet = await self.get_by_id(timesheet_id)
        if not timesheet:
            return None

        timesheet.status = TimesheetStatus(status).value
        if submitted_at is not None:
            timesheet.submitted_at = submitted_at
        if reviewed_by is not None:
            timesheet.reviewed_by = reviewed_by
        if reviewed_at is not None:
            timesheet.reviewed_at = reviewed_at
        timesheet.rejection_reason = rejection_reason
        await self.session.flush()
        await self.session.refresh(timesheet)
        return timesheet

    async def reopen(self, timesheet_id: int) -> Optional[Timesheet]:
        """
        Put a submitted timesheet back into draft.

        WHAT: Clears ``submitted_at``, which ``update_status`` only ever
        stamps, along with any rejection reason.

        Returns:
            Updated Timesheet or None
        """
        timesheet = await self.get_by_id(timesheet_id)
        if not timesheet:
            return None

        timesheet.status = TimesheetStatus.DRAFT.value
        timesheet.submitted_at = None
        timesheet.rejection_reason = None
        await self.session.flush()
        await self.session.refresh(timesheet)
        return timesheet

    async def delete_with_entries(self, timesheet_id: int) -> bool:
        """
        Remove a header and any association rows pointing at it.

        WHY: Association rows are deleted explicitly rather than relying
        on ON DELETE CASCADE, which SQLite only honours with foreign keys
        switched on.

        Returns:
            True if a header was deleted
        """
        await self.session.execute(
            delete(TimesheetEntry).where(TimesheetEntry.timesheet_id == timesheet_id)
        )
        deleted = await self.delete(timesheet_id)
        await self.session.flush()
        return deleted


class TimesheetEntryDAO(BaseDAO[TimesheetEntry]):
    """
    Data Access Object for timesheet/time entry associations.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(TimesheetEntry, session)

    async def add_entries(self, timesheet_id: int, entry_ids: Sequence[int]) -> int:
        """
        Link time entries to a timesheet, one row per entry.

        Args:
            timesheet_id: Timesheet ID
            entry_ids: Time entry IDs

        Returns:
            Number of rows inserted

        Raises:
            IntegrityError: If an entry already belongs to a timesheet
        """
        self.session.add_all(
            [
                TimesheetEntry(timesheet_id=timesheet_id, time_entry_id=entry_id)
                for entry_id in entry_ids
            ]
        )
        await self.session.flush()
        return len(entry_ids)

    async def count_for_timesheet(self, timesheet_id: int) -> int:
        """Number of entries linked to a timesheet."""
        result = await self.session.execute(
            select(func.count(TimesheetEntry.id)).where(
                TimesheetEntry.timesheet_id == timesheet_id
            )
        )
        return result.scalar_one()

    async def get_entry_ids(self, timesheet_id: int) -> List[int]:
        """IDs of the time entries linked to a timesheet."""
        result = await self.session.execute(
            select(TimesheetEntry.time_entry_id)
            .where(TimesheetEntry.timesheet_id == timesheet_id)
            .order_by(TimesheetEntry.id.asc())
        )
        return list(result.scalars().all())
