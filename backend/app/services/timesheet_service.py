"""
Timesheet Service.

WHAT: Consolidates a user's orphaned time entries for one week into a
timesheet, and moves timesheets through review.

WHY: A timesheet is three writes (header, associations, totals) that must
look like one. The store offers no multi-statement transaction at this
boundary, so creation is a saga: each step runs in order and a failure
after the header exists triggers a compensating delete of that header.
Nobody ever observes a header without its entries or with stale totals
for longer than the failed request.

HOW:
- ``list_eligible_entries`` streams orphaned entries of the week,
  enriched with task code and title from the catalog
- ``EntrySelection`` and ``compute_totals`` are pure helpers for the
  picking step; nothing is written until ``create``
- ``create`` runs the saga:
    1. insert header (draft, week end = start + 6 days)
    2. insert one association per selected entry
    3. compute hours from member entries
    4. write hours back onto the header
  If step 2, 3 or 4 fails the header is deleted, then the original
  error is re-raised. A failing compensation is logged and the original
  error still wins.
- ``submit``, ``approve`` and ``reject`` are the review transitions:
    draft/rejected -> submitted -> approved | rejected
  Approving also flags every member entry as approved.
- ``withdraw`` takes a submitted timesheet back to draft; ``delete_draft``
  removes a draft so its entries become orphaned again
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence, Set

from app.core.clock import Clock, seconds_to_hours, utcnow, week_end_for
from app.core.config import settings
from app.core.exceptions import (
    AuthorizationError,
    EmptySelectionError,
    InvalidStateError,
    TimesheetNotFoundError,
    ValidationError,
)
from app.models.timesheet import TimesheetStatus
from app.services.time_store import (
    StoredEntry,
    TaskCatalog,
    TaskRef,
    TimesheetRecord,
    TimeTrackingStore,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Selection helpers
# ============================================================================


@dataclass
class EligibleEntry:
    """An orphaned entry with the task data needed to display it."""

    entry: StoredEntry
    task: Optional[TaskRef] = None

    @property
    def id(self) -> int:
        return self.entry.id

    @property
    def duration_seconds(self) -> int:
        return self.entry.duration_seconds

    @property
    def is_billable(self) -> bool:
        return self.entry.is_billable


@dataclass
class SelectionTotals:
    total_seconds: int = 0
    billable_seconds: int = 0

    @property
    def total_hours(self) -> Decimal:
        return seconds_to_hours(self.total_seconds)

    @property
    def billable_hours(self) -> Decimal:
        return seconds_to_hours(self.billable_seconds)


def compute_totals(entries: Iterable[EligibleEntry]) -> SelectionTotals:
    """Sum durations of ``entries``, and separately of the billable ones."""
    totals = SelectionTotals()
    for item in entries:
        totals.total_seconds += item.duration_seconds
        if item.is_billable:
            totals.billable_seconds += item.duration_seconds
    return totals


@dataclass
class EntrySelection:
    """
    Which eligible entries the user has picked.

    WHAT: Starts with everything selected. Every operation only changes
    the set of selected ids; the entries themselves are never touched.
    """

    entries: List[EligibleEntry]
    selected: Optional[Set[int]] = None

    def __post_init__(self) -> None:
        if self.selected is None:
            self.selected = {item.id for item in self.entries}

    @property
    def all_ids(self) -> Set[int]:
        return {item.id for item in self.entries}

    @property
    def all_selected(self) -> bool:
        return bool(self.entries) and self.selected == self.all_ids

    def toggle(self, entry_id: int) -> None:
        if entry_id not in self.all_ids:
            raise ValidationError(message="Entry is not eligible", entry_id=entry_id)
        if entry_id in self.selected:
            self.selected.discard(entry_id)
        else:
            self.selected.add(entry_id)

    def select_all(self) -> None:
        self.selected = self.all_ids

    def deselect_all(self) -> None:
        self.selected = set()

    def toggle_all(self) -> None:
        """Select everything, unless everything already is."""
        if self.all_selected:
            self.deselect_all()
        else:
            self.select_all()

    def selected_ids(self) -> List[int]:
        """Selected ids in entry order."""
        return [item.id for item in self.entries if item.id in self.selected]

    def totals(self) -> SelectionTotals:
        return compute_totals(item for item in self.entries if item.id in self.selected)


# ============================================================================
# Service
# ============================================================================


class TimesheetService:
    """
    Service for timesheet consolidation and review.

    Args:
        store: Persistence gateway
        catalog: Task lookup for display enrichment
        clock: Source of "now" for review timestamps
    """

    def __init__(
        self,
        store: TimeTrackingStore,
        catalog: TaskCatalog,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.catalog = catalog
        self.clock = clock

    @staticmethod
    def _check_week_start(week_start: date) -> None:
        if week_start.weekday() != 0:
            raise ValidationError(
                message="Week must start on a Monday", week_start=week_start
            )

    async def list_eligible_entries(
        self, user_id: int, org_id: int, week_start: date
    ) -> AsyncIterator[EligibleEntry]:
        """
        Stream the week's orphaned entries, oldest first.

        WHAT: Each task is resolved once even when several entries share it.

        Raises:
            ValidationError: ``week_start`` is not a Monday
            PersistenceError: Store unavailable
        """
        self._check_week_start(week_start)
        entries = await self.store.list_orphaned_entries(user_id, org_id, week_start)
        tasks: Dict[int, Optional[TaskRef]] = {}
        for entry in entries:
            task = None
            if entry.task_id is not None:
                if entry.task_id not in tasks:
                    tasks[entry.task_id] = await self.catalog.resolve_task_ref(
                        entry.task_id, org_id
                    )
                task = tasks[entry.task_id]
            yield EligibleEntry(entry=entry, task=task)

    async def load_selection(
        self, user_id: int, org_id: int, week_start: date
    ) -> EntrySelection:
        """All eligible entries of the week, all selected."""
        entries = [
            item async for item in self.list_eligible_entries(user_id, org_id, week_start)
        ]
        return EntrySelection(entries=entries)

    async def create(
        self,
        user_id: int,
        org_id: int,
        week_start: date,
        selected_ids: Sequence[int],
    ) -> TimesheetRecord:
        """
        Create a draft timesheet from the selected entries.

        Args:
            user_id: Owner
            org_id: Organization ID
            week_start: Monday of the week
            selected_ids: Entries to include; each must be orphaned and
                start within the week

        Returns:
            The created timesheet with its totals and entry ids

        Raises:
            EmptySelectionError: Nothing selected (nothing is written)
            ValidationError: Bad week start or an id that is not eligible
            TimesheetAlreadyExistsError: The week already has a timesheet
            PersistenceError: A store step failed (the header was removed)
        """
        entry_ids = list(dict.fromkeys(selected_ids))
        if not entry_ids:
            raise EmptySelectionError()
        self._check_week_start(week_start)

        eligible = {
            entry.id
            for entry in await self.store.list_orphaned_entries(user_id, org_id, week_start)
        }
        ineligible = [entry_id for entry_id in entry_ids if entry_id not in eligible]
        if ineligible:
            raise ValidationError(
                message="Some selected entries are not available for this week",
                entry_ids=ineligible,
            )

        header = await self.store.insert_timesheet(
            org_id, user_id, week_start, week_end_for(week_start)
        )
        try:
            await self.store.insert_timesheet_entries(header.id, entry_ids)
            hours = await self.store.compute_timesheet_hours(header.id)
            timesheet = await self.store.update_timesheet_hours(header.id, hours)
        except Exception:
            await self._compensate(header.id)
            raise

        logger.info(
            "Created timesheet %s for user %s week %s with %s entries (%s h)",
            timesheet.id,
            user_id,
            week_start.isoformat(),
            len(entry_ids),
            timesheet.total_hours,
        )
        return timesheet

    async def _compensate(self, timesheet_id: int) -> None:
        logger.warning("Timesheet %s creation failed, removing header", timesheet_id)
        try:
            await self.store.delete_timesheet(timesheet_id)
        except Exception:
            logger.exception("Could not remove header of failed timesheet %s", timesheet_id)

    async def get_timesheet(self, timesheet_id: int, org_id: int) -> TimesheetRecord:
        """
        Raises:
            TimesheetNotFoundError: No such timesheet in the organization
        """
        timesheet = await self.store.get_timesheet(timesheet_id, org_id)
        if timesheet is None:
            raise TimesheetNotFoundError(timesheet_id=timesheet_id)
        return timesheet

    async def submit(self, timesheet_id: int, org_id: int, user_id: int) -> TimesheetRecord:
        """
        Send a draft (or a rejected timesheet) for review.

        Raises:
            TimesheetNotFoundError: No such timesheet
            AuthorizationError: Caller does not own it
            InvalidStateError: Not draft/rejected, or has no entries
        """
        timesheet = await self._load_owned(timesheet_id, org_id, user_id, "submit")
        if timesheet.status not in (TimesheetStatus.DRAFT, TimesheetStatus.REJECTED):
            raise InvalidStateError(
                message=f"Cannot submit a {timesheet.status.value} timesheet",
                status=timesheet.status.value,
            )
        if await self.store.count_timesheet_entries(timesheet_id) == 0:
            raise InvalidStateError(
                message="Cannot submit empty timesheet. Add time entries first."
            )

        updated = await self.store.update_timesheet_status(
            timesheet_id,
            TimesheetStatus.SUBMITTED,
            submitted_at=self.clock(),
            rejection_reason=None,
        )
        logger.info("Timesheet %s submitted by user %s", timesheet_id, user_id)
        return updated

    async def withdraw(self, timesheet_id: int, org_id: int, user_id: int) -> TimesheetRecord:
        """
        Take a submitted timesheet back before anyone reviews it.

        WHAT: Returns to draft with ``submitted_at`` cleared, so the owner
        can delete it or submit again.

        Raises:
            TimesheetNotFoundError: No such timesheet
            AuthorizationError: Caller does not own it
            InvalidStateError: Not submitted
        """
        timesheet = await self._load_owned(timesheet_id, org_id, user_id, "withdraw")
        if timesheet.status != TimesheetStatus.SUBMITTED:
            raise InvalidStateError(
                message="Only submitted timesheets can be withdrawn",
                status=timesheet.status.value,
            )

        updated = await self.store.reopen_timesheet(timesheet_id)
        logger.info("Timesheet %s withdrawn by user %s", timesheet_id, user_id)
        return updated

    async def delete_draft(self, timesheet_id: int, org_id: int, user_id: int) -> None:
        """
        Delete a draft timesheet.

        WHY: The header and its associations go; the entries themselves
        stay and are orphaned again, so they show up for the week's next
        timesheet.

        Raises:
            TimesheetNotFoundError: No such timesheet
            AuthorizationError: Caller does not own it
            InvalidStateError: Not a draft
        """
        timesheet = await self._load_owned(timesheet_id, org_id, user_id, "delete")
        if timesheet.status != TimesheetStatus.DRAFT:
            raise InvalidStateError(
                message="Only draft timesheets can be deleted",
                status=timesheet.status.value,
            )

        await self.store.delete_timesheet(timesheet_id)
        logger.info(
            "Timesheet %s deleted by user %s, %d entries released",
            timesheet_id,
            user_id,
            len(timesheet.entry_ids),
        )

    async def _load_owned(
        self, timesheet_id: int, org_id: int, user_id: int, action: str
    ) -> TimesheetRecord:
        timesheet = await self.get_timesheet(timesheet_id, org_id)
        if timesheet.user_id != user_id:
            raise AuthorizationError(message=f"Only the owner can {action} a timesheet")
        return timesheet

    async def _load_for_review(
        self, timesheet_id: int, org_id: int, reviewer_id: int, action: str
    ) -> TimesheetRecord:
        timesheet = await self.get_timesheet(timesheet_id, org_id)
        if timesheet.user_id == reviewer_id:
            raise AuthorizationError(message=f"Cannot {action} your own timesheet")
        if timesheet.status != TimesheetStatus.SUBMITTED:
            raise InvalidStateError(
                message="Only submitted timesheets can be reviewed",
                status=timesheet.status.value,
            )
        return timesheet

    async def approve(
        self, timesheet_id: int, org_id: int, reviewer_id: int
    ) -> TimesheetRecord:
        """
        Approve a submitted timesheet and flag its entries as approved.

        Raises:
            TimesheetNotFoundError, AuthorizationError (own timesheet),
            InvalidStateError (not submitted)
        """
        await self._load_for_review(timesheet_id, org_id, reviewer_id, "approve")
        updated = await self.store.update_timesheet_status(
            timesheet_id,
            TimesheetStatus.APPROVED,
            reviewed_by=reviewer_id,
            reviewed_at=self.clock(),
        )
        flagged = await self.store.mark_entries_approved(timesheet_id)
        logger.info(
            "Timesheet %s approved by user %s (%d entries)",
            timesheet_id,
            reviewer_id,
            flagged,
        )
        return updated

    async def reject(
        self,
        timesheet_id: int,
        org_id: int,
        reviewer_id: int,
        reason: str,
    ) -> TimesheetRecord:
        """
        Send a submitted timesheet back to its owner.

        Raises:
            ValidationError: Blank or overlong reason
            TimesheetNotFoundError, AuthorizationError, InvalidStateError
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError(message="Rejection reason is required")
        if len(reason) > settings.DESCRIPTION_MAX_LENGTH:
            raise ValidationError(
                message=f"Rejection reason must be at most {settings.DESCRIPTION_MAX_LENGTH} characters",
                length=len(reason),
            )

        await self._load_for_review(timesheet_id, org_id, reviewer_id, "reject")
        updated = await self.store.update_timesheet_status(
            timesheet_id,
            TimesheetStatus.REJECTED,
            reviewed_by=reviewer_id,
            reviewed_at=self.clock(),
            rejection_reason=reason,
        )
        logger.info("Timesheet %s rejected by user %s", timesheet_id, reviewer_id)
        return updated
