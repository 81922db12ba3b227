"""
Unit tests for the entry validator.

WHAT: Rule order, thresholds and remote-check call counts.

WHY: Verifies that:
1. The first failing rule wins, in the documented order
2. Threshold boundaries behave exactly at 60s, 4h and 12h
3. Overlap and quota are each asked at most once per attempt, and
   never when a local rule has already failed
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import (
    ConfirmationRequiredError,
    OverlapError,
    PersistenceError,
    QuotaExceededError,
    ValidationError,
)
from app.services.entry_validator import (
    EntryCandidate,
    EntryRules,
    RemoteChecks,
    check_entry_rules,
    validate_entry,
)


NOW = datetime(2026, 3, 11, 12, 0, 0)
RULES = EntryRules()


def make_candidate(seconds: int = 3600, **overrides) -> EntryCandidate:
    end = overrides.pop("end", NOW - timedelta(hours=1))
    start = overrides.pop("start", end - timedelta(seconds=seconds))
    fields = dict(org_id=1, user_id=2, start=start, end=end, task_id=10)
    fields.update(overrides)
    return EntryCandidate(**fields)


@pytest.fixture
def checks():
    return RemoteChecks(
        check_overlap=AsyncMock(return_value=False),
        check_monthly_limit=AsyncMock(return_value=True),
    )


async def run(candidate, checks, confirmed=False):
    return await validate_entry(candidate, checks, now=NOW, confirmed=confirmed, rules=RULES)


class TestLocalRules:
    """Tests for identity, temporal, duration and description rules."""

    @pytest.mark.asyncio
    async def test_missing_task_and_project(self, checks):
        with pytest.raises(ValidationError, match="Please select a task or project"):
            await run(make_candidate(task_id=None), checks)
        checks.check_overlap.assert_not_called()
        checks.check_monthly_limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_project_alone_is_enough(self, checks):
        result = await run(make_candidate(task_id=None, project_id=5), checks)
        assert result.duration_seconds == 3600

    @pytest.mark.asyncio
    async def test_end_equal_to_start(self, checks):
        end = NOW - timedelta(hours=1)
        with pytest.raises(ValidationError, match="End time must be after start time"):
            await run(make_candidate(start=end, end=end), checks)

    @pytest.mark.asyncio
    async def test_end_before_start(self, checks):
        end = NOW - timedelta(hours=1)
        with pytest.raises(ValidationError, match="End time must be after start time"):
            await run(make_candidate(start=end + timedelta(minutes=5), end=end), checks)
        checks.check_overlap.assert_not_called()
        checks.check_monthly_limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_future_end(self, checks):
        with pytest.raises(ValidationError, match="Cannot log time in the future"):
            await run(make_candidate(end=NOW + timedelta(minutes=1)), checks)
        checks.check_overlap.assert_not_called()

    @pytest.mark.asyncio
    async def test_end_exactly_now_allowed(self, checks):
        result = await run(make_candidate(end=NOW), checks)
        assert result.candidate.end == NOW

    @pytest.mark.asyncio
    async def test_identity_checked_before_temporal(self, checks):
        end = NOW - timedelta(hours=1)
        with pytest.raises(ValidationError, match="Please select a task or project"):
            await run(make_candidate(task_id=None, start=end, end=end), checks)

    @pytest.mark.asyncio
    async def test_duration_59_seconds_rejected(self, checks):
        with pytest.raises(ValidationError, match="at least 1 minute"):
            await run(make_candidate(seconds=59), checks)

    @pytest.mark.asyncio
    async def test_duration_60_seconds_accepted(self, checks):
        result = await run(make_candidate(seconds=60), checks)
        assert result.duration_seconds == 60

    @pytest.mark.asyncio
    async def test_exactly_four_hours_needs_no_description(self, checks):
        result = await run(make_candidate(seconds=4 * 3600), checks)
        assert result.duration_seconds == 14400

    @pytest.mark.asyncio
    async def test_over_four_hours_needs_description(self, checks):
        with pytest.raises(ValidationError, match="Description is required"):
            await run(make_candidate(seconds=4 * 3600 + 1), checks)

    @pytest.mark.asyncio
    async def test_whitespace_description_counts_as_blank(self, checks):
        with pytest.raises(ValidationError, match="Description is required"):
            await run(make_candidate(seconds=5 * 3600, description="   "), checks)

    @pytest.mark.asyncio
    async def test_over_four_hours_with_description(self, checks):
        result = await run(make_candidate(seconds=5 * 3600, description="Migration"), checks)
        assert result.duration_seconds == 18000

    @pytest.mark.asyncio
    async def test_description_too_long(self, checks):
        with pytest.raises(ValidationError, match="at most 500"):
            await run(make_candidate(description="x" * 501), checks)


class TestConfirmation:
    """Tests for very long sessions."""

    @pytest.mark.asyncio
    async def test_exactly_twelve_hours_needs_no_confirmation(self, checks):
        result = await run(make_candidate(seconds=12 * 3600, description="Launch"), checks)
        assert result.duration_seconds == 43200

    @pytest.mark.asyncio
    async def test_over_twelve_hours_needs_confirmation(self, checks):
        candidate = make_candidate(seconds=12 * 3600 + 60, description="Launch")

        with pytest.raises(ConfirmationRequiredError) as exc_info:
            await run(candidate, checks)

        assert exc_info.value.status_code == 428
        checks.check_overlap.assert_not_called()
        checks.check_monthly_limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirmed_long_session_passes(self, checks):
        candidate = make_candidate(seconds=13 * 3600, description="Launch")

        result = await run(candidate, checks, confirmed=True)

        assert result.duration_seconds == 13 * 3600
        checks.check_overlap.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_description_rule_precedes_confirmation(self, checks):
        with pytest.raises(ValidationError, match="Description is required"):
            await run(make_candidate(seconds=13 * 3600), checks)


class TestRemoteChecks:
    """Tests for overlap and quota."""

    @pytest.mark.asyncio
    async def test_valid_entry_calls_each_check_once(self, checks):
        candidate = make_candidate()

        result = await run(candidate, checks)

        assert result.duration_seconds == 3600
        checks.check_overlap.assert_awaited_once_with(2, candidate.start, candidate.end)
        checks.check_monthly_limit.assert_awaited_once_with(1, 2)

    @pytest.mark.asyncio
    async def test_overlap_rejected_before_quota(self, checks):
        checks.check_overlap.return_value = True

        with pytest.raises(OverlapError, match="overlaps"):
            await run(make_candidate(), checks)

        checks.check_overlap.assert_awaited_once()
        checks.check_monthly_limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, checks):
        checks.check_monthly_limit.return_value = False

        with pytest.raises(QuotaExceededError) as exc_info:
            await run(make_candidate(), checks)

        assert "Upgrade to Pro" in exc_info.value.message
        assert exc_info.value.status_code == 402
        checks.check_overlap.assert_awaited_once()
        checks.check_monthly_limit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_remote_failure_propagates(self, checks):
        checks.check_overlap.side_effect = PersistenceError()

        with pytest.raises(PersistenceError):
            await run(make_candidate(), checks)
        checks.check_monthly_limit.assert_not_called()


class TestCheckEntryRules:
    """Tests for the synchronous rule runner."""

    def test_returns_duration(self):
        assert check_entry_rules(make_candidate(seconds=90), now=NOW, rules=RULES) == 90

    def test_uses_custom_thresholds(self):
        rules = EntryRules(min_seconds=300)
        with pytest.raises(ValidationError):
            check_entry_rules(make_candidate(seconds=120), now=NOW, rules=rules)
