"""Single active timer state machine."""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from taskclock.core.errors import InvalidStateTransition, RepositoryError
from taskclock.core.models import ActiveTimer, TimeEntry, TimerState
from taskclock.core.repository import EntryRepository
from taskclock.core.state import TimerSnapshot, TimerStateStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class TimerController:
    """Records elapsed work against one task at a time.

    Only ``stop()`` has a durable side effect: it turns the active timer into
    a ``TimeEntry`` and creates it in the entry repository. Every other
    operation changes in-memory state only (mirrored to the optional state
    store so a timer survives between CLI invocations).

    Pause and resume in a state that does not support them are ignored,
    which tolerates duplicate UI events.
    """

    def __init__(
        self,
        repository: EntryRepository,
        clock: Optional[Clock] = None,
        state_store: Optional[TimerStateStore] = None,
    ):
        """Initialize the controller.

        Args:
            repository: Where stopped entries are created
            clock: Callable returning the current time. Defaults to datetime.now
            state_store: Optional store restoring and saving the timer
        """
        self.repository = repository
        self._clock = clock or datetime.now
        self._state_store = state_store
        self._active: Optional[ActiveTimer] = None
        self._pending: Optional[TimeEntry] = None

        if state_store is not None:
            snapshot = state_store.load()
            self._active = snapshot.active_timer
            self._pending = snapshot.pending_entry

    @property
    def state(self) -> TimerState:
        if self._active is None:
            return TimerState.IDLE
        return self._active.state

    @property
    def is_active(self) -> bool:
        return self._active is not None

    @property
    def active_timer(self) -> Optional[ActiveTimer]:
        """Copy of the active timer, or None when idle."""
        return replace(self._active) if self._active else None

    @property
    def pending_entry(self) -> Optional[TimeEntry]:
        """Stopped entry whose save to the repository failed."""
        return self._pending

    def start(self, task_id: str) -> Optional[TimeEntry]:
        """Start timing a task.

        An active timer, for this or any other task, is stopped first and its
        entry saved before the new timer begins.

        Args:
            task_id: Task to time

        Returns:
            The entry emitted for the previously active timer, if any

        Raises:
            RepositoryError: If the previous entry could not be saved. The new
                timer is not started in that case.
        """
        self.save_pending()
        previous = self.stop()

        self._active = ActiveTimer(task_id=task_id, start_time=self._clock())
        self._save_state()
        logger.info(f"Started timer for task {task_id}")
        return previous

    def pause(self, strict: bool = False) -> bool:
        """Pause the running timer.

        Returns:
            True if the timer was paused, False if it was not running

        Raises:
            InvalidStateTransition: Only with ``strict=True`` when not running
        """
        if self._active is None or not self._active.is_running:
            logger.debug(f"Ignoring pause in state {self.state.value}")
            if strict:
                raise InvalidStateTransition("pause", self.state)
            return False

        self._active.is_running = False
        self._active.paused_at = self._clock()
        self._save_state()
        logger.info(f"Paused timer for task {self._active.task_id}")
        return True

    def resume(self, strict: bool = False) -> bool:
        """Resume a paused timer, excluding the paused interval.

        Returns:
            True if the timer was resumed, False if it was not paused

        Raises:
            InvalidStateTransition: Only with ``strict=True`` when not paused
        """
        if self._active is None or self._active.is_running:
            logger.debug(f"Ignoring resume in state {self.state.value}")
            if strict:
                raise InvalidStateTransition("resume", self.state)
            return False

        self._active.paused = self._active.paused_until(self._clock())
        self._active.paused_at = None
        self._active.is_running = True
        self._save_state()
        logger.info(f"Resumed timer for task {self._active.task_id}")
        return True

    def stop(self) -> Optional[TimeEntry]:
        """Stop the active timer and save its entry.

        The entry starts at the real start advanced by all paused time, so
        its duration is the worked time only. Stopping while idle does
        nothing.

        Returns:
            The created entry, or None if no timer was active

        Raises:
            RepositoryError: If the entry could not be saved. The timer is
                already idle; the entry is kept as ``pending_entry`` and
                attached to the error for a retry.
        """
        if self._active is None:
            return None

        # Entries are created in stop order.
        self.save_pending()

        timer = self._active
        end_time = self._clock()
        start_time = min(timer.start_time + timer.paused_until(end_time), end_time)
        entry = TimeEntry(task_id=timer.task_id, start_time=start_time, end_time=end_time)

        self._active = None
        self._pending = entry
        self._save_state()
        logger.info(f"Stopped timer for task {entry.task_id} after {entry.duration}s")

        self.save_pending()
        return entry

    def save_pending(self) -> Optional[TimeEntry]:
        """Retry saving an entry whose earlier save failed.

        Returns:
            The saved entry, or None if nothing was pending

        Raises:
            RepositoryError: If the save fails again
        """
        if self._pending is None:
            return None

        entry = self._pending
        try:
            # A crash between create and the state save leaves it stored already.
            if self.repository.get(entry.id) == entry:
                logger.debug(f"Entry {entry.id} was already saved")
            else:
                self.repository.create(entry)
        except RepositoryError as e:
            logger.error(f"Failed to save entry {entry.id} for task {entry.task_id}: {e}")
            if e.entry is None:
                e.entry = entry
            raise

        self._pending = None
        self._save_state()
        logger.info(f"Created entry {entry.id} for task {entry.task_id}")
        return entry

    def elapsed_seconds(self) -> int:
        """Worked seconds of the active timer, for display.

        Frozen at the pause instant while paused. Zero when idle.
        """
        if self._active is None:
            return 0

        timer = self._active
        reference = timer.paused_at if timer.paused_at is not None else self._clock()
        worked = reference - timer.start_time - timer.paused
        return max(0, math.floor(worked / timedelta(seconds=1)))

    def _save_state(self) -> None:
        if self._state_store is not None:
            self._state_store.save(TimerSnapshot(self._active, self._pending))
