"""
Unit tests for the SQL time tracking store.

WHAT: SqlTimeTrackingStore against in-memory SQLite.

WHY: Verifies that:
1. The monthly quota applies to free organizations only
2. A duplicate week header surfaces as TimesheetAlreadyExistsError
3. Driver errors, including a failed commit, surface as PersistenceError
4. Task hours are recomputed from logged entries
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.exceptions import PersistenceError, TimesheetAlreadyExistsError
from app.models.subscription import SubscriptionPlan
from app.models.timesheet import TimesheetStatus
from app.services.entry_validator import EntryCandidate, ValidatedEntry
from app.services.time_store import SqlTimeTrackingStore, TimesheetHours
from tests.factories import OrganizationFactory, TaskFactory, TimeEntryFactory
from tests.fakes import FakeClock


NOW = datetime(2026, 3, 11, 12, 0)
WEEK_START = date(2026, 3, 9)


@pytest.fixture
def sql_store(db_session):
    return SqlTimeTrackingStore(db_session, clock=FakeClock(NOW))


class TestMonthlyLimit:
    """Tests for the plan quota."""

    @pytest.mark.asyncio
    async def test_free_plan_limited(self, db_session, test_org, sql_store, monkeypatch):
        monkeypatch.setattr(settings, "FREE_PLAN_MONTHLY_ENTRY_LIMIT", 2)
        task = await TaskFactory.create(db_session, test_org)
        await TimeEntryFactory.create(db_session, test_org, datetime(2026, 3, 2, 9), task=task)

        assert await sql_store.check_monthly_limit(test_org.id, 1) is True

        await TimeEntryFactory.create(db_session, test_org, datetime(2026, 3, 3, 9), task=task)

        assert await sql_store.check_monthly_limit(test_org.id, 1) is False

    @pytest.mark.asyncio
    async def test_previous_month_not_counted(self, db_session, test_org, sql_store, monkeypatch):
        monkeypatch.setattr(settings, "FREE_PLAN_MONTHLY_ENTRY_LIMIT", 1)
        task = await TaskFactory.create(db_session, test_org)
        await TimeEntryFactory.create(db_session, test_org, datetime(2026, 2, 27, 9), task=task)

        assert await sql_store.check_monthly_limit(test_org.id, 1) is True

    @pytest.mark.asyncio
    async def test_pro_plan_unlimited(self, db_session, sql_store, monkeypatch):
        monkeypatch.setattr(settings, "FREE_PLAN_MONTHLY_ENTRY_LIMIT", 1)
        org = await OrganizationFactory.create(db_session, name="Pro Org", plan=SubscriptionPlan.PRO)
        task = await TaskFactory.create(db_session, org)
        await TimeEntryFactory.create(db_session, org, datetime(2026, 3, 2, 9), task=task)

        assert await sql_store.check_monthly_limit(org.id, 1) is True


class TestEntries:
    """Tests for entry writes and task hours."""

    @pytest.mark.asyncio
    async def test_insert_and_recompute(self, db_session, test_org, sql_store):
        task = await TaskFactory.create(db_session, test_org)
        await TimeEntryFactory.create(db_session, test_org, datetime(2026, 3, 9, 9), minutes=30, task=task)
        start = datetime(2026, 3, 10, 9)
        candidate = EntryCandidate(
            org_id=test_org.id,
            user_id=1,
            start=start,
            end=start + timedelta(hours=1),
            task_id=task.id,
            description=" Review ",
        )

        stored = await sql_store.insert_time_entry(
            ValidatedEntry(candidate=candidate, duration_seconds=3600)
        )
        await sql_store.recompute_task_hours(task.id)
        await db_session.refresh(task)

        assert stored.id is not None
        assert stored.description == "Review"
        assert task.actual_hours == Decimal("1.50")
        assert await sql_store.check_overlap(1, start, start + timedelta(minutes=10))

    @pytest.mark.asyncio
    async def test_resolve_task_ref(self, db_session, test_org, sql_store):
        task = await TaskFactory.create(db_session, test_org, code="DEV-7", title="API")

        ref = await sql_store.resolve_task_ref(task.id, test_org.id)

        assert ref.code == "DEV-7"
        assert ref.title == "API"
        assert await sql_store.resolve_task_ref(task.id, test_org.id + 1) is None


class TestTimesheets:
    """Tests for timesheet writes."""

    @pytest.mark.asyncio
    async def test_full_creation_sequence(self, db_session, test_org, sql_store):
        task = await TaskFactory.create(db_session, test_org)
        entry = await TimeEntryFactory.create(
            db_session, test_org, datetime(2026, 3, 9, 9), minutes=45, task=task
        )

        header = await sql_store.insert_timesheet(
            test_org.id, 1, WEEK_START, date(2026, 3, 15)
        )
        await sql_store.insert_timesheet_entries(header.id, [entry.id])
        hours = await sql_store.compute_timesheet_hours(header.id)
        record = await sql_store.update_timesheet_hours(header.id, hours)

        assert hours == TimesheetHours(total_seconds=2700, billable_seconds=2700)
        assert record.total_hours == Decimal("0.75")
        assert record.entry_ids == [entry.id]
        assert await sql_store.list_orphaned_entries(1, test_org.id, WEEK_START) == []

    @pytest.mark.asyncio
    async def test_duplicate_header(self, test_org, sql_store):
        await sql_store.insert_timesheet(test_org.id, 1, WEEK_START, date(2026, 3, 15))

        with pytest.raises(TimesheetAlreadyExistsError):
            await sql_store.insert_timesheet(test_org.id, 1, WEEK_START, date(2026, 3, 15))

    @pytest.mark.asyncio
    async def test_delete_timesheet(self, test_org, sql_store):
        header = await sql_store.insert_timesheet(test_org.id, 1, WEEK_START, date(2026, 3, 15))

        await sql_store.delete_timesheet(header.id)

        assert await sql_store.get_timesheet(header.id, test_org.id) is None

    @pytest.mark.asyncio
    async def test_reopen_and_approve_entries(self, db_session, test_org, sql_store):
        task = await TaskFactory.create(db_session, test_org)
        entry = await TimeEntryFactory.create(
            db_session, test_org, datetime(2026, 3, 9, 9), minutes=45, task=task
        )
        entry_id = entry.id
        header = await sql_store.insert_timesheet(
            test_org.id, 1, WEEK_START, date(2026, 3, 15)
        )
        await sql_store.insert_timesheet_entries(header.id, [entry_id])
        await sql_store.update_timesheet_status(
            header.id, TimesheetStatus.SUBMITTED, submitted_at=NOW
        )

        reopened = await sql_store.reopen_timesheet(header.id)

        assert reopened.status == TimesheetStatus.DRAFT
        assert reopened.submitted_at is None
        assert reopened.entry_ids == [entry_id]

        assert await sql_store.mark_entries_approved(header.id) == 1

    @pytest.mark.asyncio
    async def test_reopen_missing_timesheet(self, sql_store):
        with pytest.raises(PersistenceError):
            await sql_store.reopen_timesheet(99999)


class TestErrorTranslation:
    """Tests for driver error wrapping."""

    @pytest.mark.asyncio
    async def test_driver_error_becomes_persistence_error(self):
        session = MagicMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("connection lost"))
        )
        store = SqlTimeTrackingStore(session, clock=FakeClock(NOW))

        with pytest.raises(PersistenceError) as exc_info:
            await store.check_overlap(1, NOW - timedelta(hours=1), NOW)

        assert exc_info.value.status_code == 503
        assert exc_info.value.context["operation"] == "check_overlap"

    @pytest.mark.asyncio
    async def test_failed_commit_becomes_persistence_error(self):
        session = MagicMock()
        session.commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, Exception("connection lost"))
        )
        store = SqlTimeTrackingStore(session, clock=FakeClock(NOW))

        with pytest.raises(PersistenceError) as exc_info:
            await store.commit()

        assert exc_info.value.context["operation"] == "commit"
