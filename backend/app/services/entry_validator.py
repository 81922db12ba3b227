"""
Entry Validator.

WHAT: The single set of rules every time entry passes before it is
persisted, whether it was typed in manually or produced by stopping a
timer.

WHY: Manual and timer-derived entries used to be checked by two slightly
different code paths. One validator means one ordering of checks and one
set of messages for both.

HOW: Rules run in a fixed order and the first failure wins:
1. A task or a project is set
2. End is after start
3. Neither bound is in the future
4. Duration is at least the minimum (60s)
5. Long sessions (> 4h) carry a description; descriptions fit the column
6. Very long sessions (> 12h) are explicitly confirmed
7. No overlap with the user's existing entries (asked of the store)
8. The organization's plan allows another entry this month (asked of the store)

Steps 1-6 are pure. Steps 7 and 8 go through injected callables so the
validator never talks to a database directly, and each is awaited at most
once per attempt.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, TYPE_CHECKING

from app.core.config import settings
from app.core.exceptions import (
    ConfirmationRequiredError,
    OverlapError,
    QuotaExceededError,
    ValidationError,
)
from app.models.time_entry import TimerType

if TYPE_CHECKING:
    from app.services.time_store import TimeTrackingStore


OverlapCheck = Callable[[int, datetime, datetime], Awaitable[bool]]
MonthlyLimitCheck = Callable[[int, int], Awaitable[bool]]


@dataclass
class EntryCandidate:
    """
    A time entry that has not been validated yet.

    WHAT: Everything needed to persist one entry. ``start`` and ``end`` are
    naive UTC instants.
    """

    org_id: int
    user_id: int
    start: datetime
    end: datetime
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    description: str = ""
    is_billable: bool = True
    timer_type: TimerType = TimerType.MANUAL

    @property
    def duration_seconds(self) -> int:
        """Whole seconds between start and end (negative if reversed)."""
        return int((self.end - self.start).total_seconds())


@dataclass
class ValidatedEntry:
    """A candidate that passed every rule, with its computed duration."""

    candidate: EntryCandidate
    duration_seconds: int


@dataclass
class EntryRules:
    """
    Thresholds the validator enforces.

    WHY: Loaded from settings in production; tests build their own to keep
    cases readable.
    """

    min_seconds: int = 60
    description_required_after_seconds: int = 4 * 3600
    confirmation_required_after_seconds: int = 12 * 3600
    description_max_length: int = 500

    @classmethod
    def from_settings(cls) -> "EntryRules":
        return cls(
            min_seconds=settings.MIN_ENTRY_SECONDS,
            description_required_after_seconds=settings.DESCRIPTION_REQUIRED_AFTER_SECONDS,
            confirmation_required_after_seconds=settings.CONFIRMATION_REQUIRED_AFTER_SECONDS,
            description_max_length=settings.DESCRIPTION_MAX_LENGTH,
        )


@dataclass
class RemoteChecks:
    """
    The two questions only the store can answer.

    ``check_overlap(user_id, start, end)`` returns True when an overlapping
    entry exists. ``check_monthly_limit(org_id, user_id)`` returns True when
    another entry is allowed this month.
    """

    check_overlap: OverlapCheck
    check_monthly_limit: MonthlyLimitCheck

    @classmethod
    def from_store(cls, store: "TimeTrackingStore") -> "RemoteChecks":
        return cls(
            check_overlap=store.check_overlap,
            check_monthly_limit=store.check_monthly_limit,
        )


def check_entry_rules(
    candidate: EntryCandidate,
    *,
    now: datetime,
    confirmed: bool = False,
    rules: Optional[EntryRules] = None,
) -> int:
    """
    Run the local rules (steps 1-6) and return the duration in seconds.

    Raises:
        ValidationError: Identity, temporal, duration or description rule failed
        ConfirmationRequiredError: Session exceeds the confirmation threshold
            and ``confirmed`` is False
    """
    rules = rules or EntryRules.from_settings()

    if candidate.task_id is None and candidate.project_id is None:
        raise ValidationError(message="Please select a task or project")

    if candidate.end <= candidate.start:
        raise ValidationError(
            message="End time must be after start time",
            start=candidate.start,
            end=candidate.end,
        )

    if candidate.start > now or candidate.end > now:
        raise ValidationError(message="Cannot log time in the future", end=candidate.end)

    duration = candidate.duration_seconds
    if duration < rules.min_seconds:
        raise ValidationError(
            message="Duration must be at least 1 minute",
            duration_seconds=duration,
        )

    description = (candidate.description or "").strip()
    if duration > rules.description_required_after_seconds and not description:
        raise ValidationError(
            message="Description is required for sessions longer than 4 hours",
            duration_seconds=duration,
        )
    if len(description) > rules.description_max_length:
        raise ValidationError(
            message=f"Description must be at most {rules.description_max_length} characters",
            length=len(description),
        )

    if duration > rules.confirmation_required_after_seconds and not confirmed:
        raise ConfirmationRequiredError(duration_seconds=duration)

    return duration


async def validate_entry(
    candidate: EntryCandidate,
    checks: RemoteChecks,
    *,
    now: datetime,
    confirmed: bool = False,
    rules: Optional[EntryRules] = None,
) -> ValidatedEntry:
    """
    Validate a candidate entry end to end.

    WHAT: Local rules first, then overlap, then quota. Nothing remote is
    asked once a local rule has failed.

    Args:
        candidate: Entry to validate
        checks: Store-backed overlap and quota checks
        now: Current instant (naive UTC)
        confirmed: Caller already confirmed a very long session
        rules: Thresholds, settings-derived when omitted

    Returns:
        ValidatedEntry

    Raises:
        ValidationError: A local rule failed
        ConfirmationRequiredError: Long session needs confirmation
        OverlapError: The user already has time in that interval
        QuotaExceededError: The plan's monthly entry limit is reached
        PersistenceError: A remote check could not be answered
    """
    duration = check_entry_rules(candidate, now=now, confirmed=confirmed, rules=rules)

    if await checks.check_overlap(candidate.user_id, candidate.start, candidate.end):
        raise OverlapError(start=candidate.start, end=candidate.end)

    if not await checks.check_monthly_limit(candidate.org_id, candidate.user_id):
        raise QuotaExceededError(
            message=(
                f"Free plan allows max {settings.FREE_PLAN_MONTHLY_ENTRY_LIMIT} time entries "
                "per month. Upgrade to Pro for unlimited."
            ),
        )

    return ValidatedEntry(candidate=candidate, duration_seconds=duration)
