"""
Test factories for creating test data.

WHY: Factories provide a consistent, reusable way to create test objects,
reducing duplication and making tests more maintainable. Using factories
instead of manual object creation ensures tests stay consistent when models change.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import week_end_for
from app.models.organization import Organization
from app.models.project import Project
from app.models.subscription import Subscription, SubscriptionPlan
from app.models.task import Task
from app.models.time_entry import TimeEntry, TimerType
from app.models.timesheet import Timesheet, TimesheetEntry, TimesheetStatus


class OrganizationFactory:
    """
    Factory for creating Organization test instances.

    WHY: Centralizes organization creation logic for tests,
    ensuring consistent test data across all test suites.
    """

    @staticmethod
    async def create(
        session: AsyncSession,
        name: str = "Test Organization",
        is_active: bool = True,
        plan: Optional[SubscriptionPlan] = None,
    ) -> Organization:
        """
        Create an organization for testing.

        Args:
            session: Database session
            name: Organization name
            is_active: Whether organization is active
            plan: Subscription plan; no subscription row when None (free)

        Returns:
            Created Organization instance
        """
        org = Organization(name=name, is_active=is_active)
        session.add(org)
        await session.commit()
        await session.refresh(org)

        if plan is not None:
            session.add(Subscription(org_id=org.id, plan=plan))
            await session.commit()
        return org


class ProjectFactory:
    """Factory for creating Project test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        org: Organization,
        code: str = "PRJ",
        name: str = "Test Project",
    ) -> Project:
        project = Project(org_id=org.id, code=code, name=name)
        session.add(project)
        await session.commit()
        await session.refresh(project)
        return project


class TaskFactory:
    """Factory for creating Task test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        org: Organization,
        project: Optional[Project] = None,
        code: str = "T-1",
        title: str = "Test Task",
    ) -> Task:
        task = Task(
            org_id=org.id,
            project_id=project.id if project else None,
            code=code,
            title=title,
            actual_hours=Decimal("0"),
        )
        session.add(task)
        await session.commit()
        await session.refresh(task)
        return task


class TimeEntryFactory:
    """
    Factory for creating TimeEntry test instances.

    WHY: Entries are inserted directly, bypassing the validator, so tests
    can set up overlaps and quota situations precisely.
    """

    @staticmethod
    async def create(
        session: AsyncSession,
        org: Organization,
        start_time: datetime,
        minutes: int = 60,
        user_id: int = 1,
        task: Optional[Task] = None,
        project: Optional[Project] = None,
        is_billable: bool = True,
        description: str = "",
        timer_type: TimerType = TimerType.MANUAL,
    ) -> TimeEntry:
        """
        Create a time entry for testing.

        Args:
            session: Database session
            org: Owning organization
            start_time: Start instant (naive UTC)
            minutes: Duration in minutes
            user_id: User who worked
            task: Task, required unless a project is given
            project: Project
            is_billable: Billable flag
            description: Work description
            timer_type: Provenance

        Returns:
            Created TimeEntry instance
        """
        entry = TimeEntry(
            org_id=org.id,
            user_id=user_id,
            task_id=task.id if task else None,
            project_id=project.id if project else None,
            timer_type=timer_type.value,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=minutes),
            duration_seconds=minutes * 60,
            description=description,
            is_billable=is_billable,
        )
        session.add(entry)
        await session.commit()
        await session.refresh(entry)
        return entry


class TimesheetFactory:
    """Factory for creating Timesheet test instances with linked entries."""

    @staticmethod
    async def create(
        session: AsyncSession,
        org: Organization,
        week_start: date,
        user_id: int = 1,
        entries: Sequence[TimeEntry] = (),
        status: TimesheetStatus = TimesheetStatus.DRAFT,
    ) -> Timesheet:
        timesheet = Timesheet(
            org_id=org.id,
            user_id=user_id,
            week_start_date=week_start,
            week_end_date=week_end_for(week_start),
            status=status.value,
            total_hours=Decimal("0"),
            billable_hours=Decimal("0"),
        )
        session.add(timesheet)
        await session.flush()
        for entry in entries:
            session.add(TimesheetEntry(timesheet_id=timesheet.id, time_entry_id=entry.id))
        await session.commit()
        await session.refresh(timesheet)
        return timesheet
