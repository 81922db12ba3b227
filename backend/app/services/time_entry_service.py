"""
Time Entry Service.

WHAT: Saving time entries, from a manual form or from a stopped timer.

WHY: Both flows end the same way: validate, insert, refresh the task's
logged hours, tell the user how much was logged. Keeping them in one
service means they cannot drift apart.

HOW: Builds an EntryCandidate, runs it through ``validate_entry`` with
the store's overlap and quota checks, then inserts it. The task-hours
refresh is best effort: a failure there is logged and does not undo the
saved entry.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.clock import Clock, format_duration, utcnow
from app.core.exceptions import PersistenceError
from app.models.time_entry import TimerType
from app.services.entry_validator import (
    EntryCandidate,
    EntryRules,
    RemoteChecks,
    validate_entry,
)
from app.services.time_store import StoredEntry, TimeTrackingStore
from app.services.timer import Timer

logger = logging.getLogger(__name__)


@dataclass
class LoggedEntry:
    """A saved entry plus the confirmation shown to the user."""

    entry: StoredEntry

    @property
    def duration_seconds(self) -> int:
        return self.entry.duration_seconds

    @property
    def message(self) -> str:
        return f"Time logged: {format_duration(self.entry.duration_seconds)}"


class TimeEntryService:
    """
    Service for saving time entries.

    Args:
        store: Persistence gateway
        clock: Source of "now" for the future-dating rule
        rules: Validation thresholds, settings-derived when omitted
    """

    def __init__(
        self,
        store: TimeTrackingStore,
        clock: Clock = utcnow,
        rules: Optional[EntryRules] = None,
    ):
        self.store = store
        self.clock = clock
        self.rules = rules or EntryRules.from_settings()

    async def log_manual_entry(
        self,
        org_id: int,
        user_id: int,
        start: datetime,
        end: datetime,
        task_id: Optional[int] = None,
        project_id: Optional[int] = None,
        description: str = "",
        is_billable: bool = True,
        confirmed: bool = False,
    ) -> LoggedEntry:
        """
        Save a manually entered interval.

        Raises:
            ValidationError, ConfirmationRequiredError, OverlapError,
            QuotaExceededError, PersistenceError
        """
        candidate = EntryCandidate(
            org_id=org_id,
            user_id=user_id,
            start=start,
            end=end,
            task_id=task_id,
            project_id=project_id,
            description=description,
            is_billable=is_billable,
            timer_type=TimerType.MANUAL,
        )
        return await self._persist(candidate, confirmed)

    async def save_timer_entry(
        self,
        timer: Timer,
        org_id: int,
        user_id: int,
        confirmed: bool = False,
    ) -> LoggedEntry:
        """
        Save a stopped timer's pending interval.

        WHAT: The entry is committed before the timer is reset, so the
        in-memory interval outlives any failure of the unit of work. On any
        failure, including a declined or missing confirmation or a failed
        commit, the pending interval stays so the user can edit, confirm
        and retry, or discard it.

        Raises:
            InvalidStateError: The timer has nothing pending
            ConflictError: The timer was started in another organization
            ValidationError, ConfirmationRequiredError, OverlapError,
            QuotaExceededError, PersistenceError
        """
        candidate = timer.build_candidate(org_id, user_id)
        logged = await self._persist(candidate, confirmed)
        await self.store.commit()
        timer.reset()
        return logged

    def discard_timer_entry(self, timer: Timer) -> None:
        """Drop whatever the timer holds without saving."""
        if timer.pending is not None:
            logger.info(
                "Discarded stopped timer of %s seconds",
                timer.pending.duration_seconds,
            )
        timer.reset()

    async def _persist(self, candidate: EntryCandidate, confirmed: bool) -> LoggedEntry:
        validated = await validate_entry(
            candidate,
            RemoteChecks.from_store(self.store),
            now=self.clock(),
            confirmed=confirmed,
            rules=self.rules,
        )
        stored = await self.store.insert_time_entry(validated)
        logger.info(
            "Logged %s entry %s for user %s: %s seconds",
            stored.timer_type.value,
            stored.id,
            stored.user_id,
            stored.duration_seconds,
        )

        if stored.task_id is not None:
            try:
                await self.store.recompute_task_hours(stored.task_id)
            except PersistenceError as exc:
                logger.warning(
                    "Could not refresh logged hours of task %s: %s",
                    stored.task_id,
                    exc.message,
                )

        return LoggedEntry(entry=stored)
