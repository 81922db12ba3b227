"""
Timer State Machine.

WHAT: The lifecycle of a live timer: idle, running, paused, and the
stopped-but-not-yet-saved candidate it produces.

WHY: A timer used to be a bag of loosely related fields (is_running,
is_paused, started_at, accumulated). Nothing stopped "paused and running"
from being true at once. Here the state is a tagged value, so each mode
carries only the data that is meaningful in it:
- Idle: nothing is being measured
- Running(since, banked): an open segment since ``since`` plus banked time
- Paused(banked): banked time only

HOW: ``Timer`` holds the state plus the fields the user edits while
measuring (task, project, description, billable). Elapsed time is always
computed from the injected clock, never stored. ``stop()`` is synchronous
and cannot fail from an active state; it leaves a ``StoppedTimer`` pending
until the save step succeeds or the user discards it.

``TimerRegistry`` keeps one Timer per user, whatever organization the
request comes from, which is what makes "at most one active timer per
user" hold inside a process. A started timer is bound to the organization
it was started in; it can only be continued and saved there.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Union

from app.core.clock import Clock, utcnow
from app.core.config import settings
from app.core.exceptions import ConflictError, InvalidStateError, ValidationError
from app.models.time_entry import TimerType
from app.services.entry_validator import EntryCandidate

logger = logging.getLogger(__name__)


class TimerMode(str, Enum):
    """Observable mode of a timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


TIMED_KINDS = frozenset(
    {TimerType.QUICK_TIMER, TimerType.POMODORO_FOCUS, TimerType.POMODORO_BREAK}
)


@dataclass(frozen=True)
class Idle:
    mode = TimerMode.IDLE


@dataclass(frozen=True)
class Running:
    since: datetime
    banked: timedelta = timedelta(0)
    mode = TimerMode.RUNNING


@dataclass(frozen=True)
class Paused:
    banked: timedelta
    mode = TimerMode.PAUSED


TimerState = Union[Idle, Running, Paused]


@dataclass(frozen=True)
class StoppedTimer:
    """
    Measured interval of a stopped timer, waiting to be saved.

    ``start`` is derived as ``end - duration`` so pauses never show up as
    gaps in the saved entry.
    """

    kind: TimerType
    start: datetime
    end: datetime
    duration_seconds: int


class Timer:
    """
    One user's timer.

    Args:
        clock: Source of "now" (naive UTC); inject a fake in tests
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock
        self.state: TimerState = Idle()
        self.org_id: Optional[int] = None
        self.kind: Optional[TimerType] = None
        self.target_seconds: Optional[int] = None
        self.task_id: Optional[int] = None
        self.project_id: Optional[int] = None
        self.description: str = ""
        self.is_billable: bool = True
        self.pending: Optional[StoppedTimer] = None

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def mode(self) -> TimerMode:
        return self.state.mode

    @property
    def is_active(self) -> bool:
        return isinstance(self.state, (Running, Paused))

    @property
    def started_at(self) -> Optional[datetime]:
        """Start of the open segment, None unless running."""
        if isinstance(self.state, Running):
            return self.state.since
        return None

    @property
    def accumulated_seconds(self) -> int:
        """Seconds banked from closed segments."""
        if isinstance(self.state, (Running, Paused)):
            return int(self.state.banked.total_seconds())
        return 0

    def _elapsed(self) -> timedelta:
        if isinstance(self.state, Running):
            return self.state.banked + (self.clock() - self.state.since)
        if isinstance(self.state, Paused):
            return self.state.banked
        return timedelta(0)

    @property
    def elapsed_seconds(self) -> int:
        """Banked time plus the open segment, read from the clock each call."""
        return int(self._elapsed().total_seconds())

    @property
    def remaining_seconds(self) -> Optional[int]:
        """Seconds left to the target, None for timers without one."""
        if self.target_seconds is None:
            return None
        return max(self.target_seconds - self.elapsed_seconds, 0)

    @property
    def is_target_reached(self) -> bool:
        return self.target_seconds is not None and self.elapsed_seconds >= self.target_seconds

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(
        self,
        kind: TimerType,
        target_seconds: Optional[int] = None,
        org_id: Optional[int] = None,
    ) -> None:
        """
        Start (or keep running) a timer of ``kind`` in ``org_id``.

        WHAT:
        - Idle: a fresh measurement begins, bound to ``org_id``; any pending
          stopped timer is dropped, edited fields are kept
        - Running the same kind: the open segment is banked and a new one
          opens, so no time is lost
        - Paused the same kind: behaves like resume

        Raises:
            ConflictError: A timer of another kind, or in another
                organization, is running or paused
            ValidationError: ``kind`` is not a timed kind or the target is not positive
        """
        kind = TimerType(kind)
        if kind not in TIMED_KINDS:
            raise ValidationError(message="Manual entries are not timed", kind=kind.value)
        if target_seconds is not None and target_seconds <= 0:
            raise ValidationError(
                message="Timer target must be positive", target_seconds=target_seconds
            )

        if self.is_active and (self.kind != kind or self.org_id != org_id):
            raise ConflictError(
                active_kind=self.kind.value,
                requested_kind=kind.value,
                active_organization_id=self.org_id,
            )

        now = self.clock()
        if isinstance(self.state, Running):
            self.state = Running(since=now, banked=self._elapsed())
        elif isinstance(self.state, Paused):
            self.state = Running(since=now, banked=self.state.banked)
        else:
            self.state = Running(since=now)
            self.org_id = org_id
            self.kind = kind
            self.target_seconds = target_seconds
            self.pending = None

        if target_seconds is not None:
            self.target_seconds = target_seconds

    def pause(self) -> None:
        """
        Bank the open segment and pause.

        Raises:
            InvalidStateError: The timer is not running
        """
        if not isinstance(self.state, Running):
            raise InvalidStateError(
                message="Only a running timer can be paused", mode=self.mode.value
            )
        self.state = Paused(banked=self._elapsed())

    def resume(self) -> None:
        """
        Open a new segment on a paused timer.

        Raises:
            InvalidStateError: The timer is not paused
        """
        if not isinstance(self.state, Paused):
            raise InvalidStateError(
                message="Only a paused timer can be resumed", mode=self.mode.value
            )
        self.state = Running(since=self.clock(), banked=self.state.banked)

    def stop(self) -> StoppedTimer:
        """
        Stop measuring and return the interval to save.

        WHAT: Goes idle. Task, project, description and billable flag are
        kept so the save step can use (and the user can still edit) them.

        Raises:
            InvalidStateError: The timer is idle
        """
        if not self.is_active:
            raise InvalidStateError(message="No timer is running", mode=self.mode.value)

        now = self.clock()
        total = self._elapsed()
        self.pending = StoppedTimer(
            kind=self.kind,
            start=now - total,
            end=now,
            duration_seconds=int(total.total_seconds()),
        )
        self.state = Idle()
        return self.pending

    def reset(self) -> None:
        """Go idle and forget everything, including a pending stopped timer."""
        self.state = Idle()
        self.org_id = None
        self.kind = None
        self.target_seconds = None
        self.task_id = None
        self.project_id = None
        self.description = ""
        self.is_billable = True
        self.pending = None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _ensure_editable(self) -> None:
        if not self.is_active and self.pending is None:
            raise InvalidStateError(
                message="Start a timer before editing it", mode=self.mode.value
            )

    def update_task(self, task_id: Optional[int], project_id: Optional[int] = None) -> None:
        self._ensure_editable()
        self.task_id = task_id
        self.project_id = project_id

    def update_description(self, description: str) -> None:
        self._ensure_editable()
        description = description or ""
        if len(description) > settings.DESCRIPTION_MAX_LENGTH:
            raise ValidationError(
                message=f"Description must be at most {settings.DESCRIPTION_MAX_LENGTH} characters",
                length=len(description),
            )
        self.description = description

    def update_billable(self, is_billable: bool) -> None:
        self._ensure_editable()
        self.is_billable = bool(is_billable)

    # ------------------------------------------------------------------
    # Save support
    # ------------------------------------------------------------------

    def build_candidate(self, org_id: int, user_id: int) -> EntryCandidate:
        """
        Combine the pending interval with the current edited fields.

        Raises:
            InvalidStateError: Nothing is pending
            ConflictError: The timer was started in another organization
        """
        if self.pending is None:
            raise InvalidStateError(message="Stop the timer before saving it", mode=self.mode.value)
        if self.org_id is not None and self.org_id != org_id:
            raise ConflictError(
                message="This timer belongs to another organization",
                active_organization_id=self.org_id,
            )
        return EntryCandidate(
            org_id=org_id,
            user_id=user_id,
            start=self.pending.start,
            end=self.pending.end,
            task_id=self.task_id,
            project_id=self.project_id,
            description=self.description,
            is_billable=self.is_billable,
            timer_type=self.pending.kind,
        )


class TimerRegistry:
    """
    One Timer per user for this process.

    WHY: A user has a single timer across every organization they work
    in. Requests for the same user may land on different threads of the
    server; the lock guards creation and eviction of the per-user Timer.
    Idle timers holding nothing are released so the map only holds users
    with something in flight.
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock
        self._timers: Dict[int, Timer] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._timers)

    def get(self, user_id: int) -> Timer:
        with self._lock:
            timer = self._timers.get(user_id)
            if timer is None:
                timer = Timer(clock=self.clock)
                self._timers[user_id] = timer
                logger.debug("Created timer for user %s", user_id)
            return timer

    def release(self, user_id: int) -> bool:
        """
        Drop the user's timer if it is idle with nothing pending.

        Returns:
            True if a timer was evicted
        """
        with self._lock:
            timer = self._timers.get(user_id)
            if timer is None or timer.is_active or timer.pending is not None:
                return False
            del self._timers[user_id]
            logger.debug("Released timer for user %s", user_id)
            return True

    def clear(self) -> None:
        with self._lock:
            self._timers.clear()


timer_registry = TimerRegistry()
