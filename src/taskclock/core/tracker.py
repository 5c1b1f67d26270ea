"""Core time tracking service."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Union
from uuid import UUID

from taskclock.core.errors import EntryNotFoundError, ValidationError
from taskclock.core.models import EntryQuery, TimeEntry
from taskclock.core.repository import EntryRepository, InMemoryEntryRepository
from taskclock.core.timer import Clock, TimerController

logger = logging.getLogger(__name__)

MIN_ID_PREFIX = 4
HEX_CHARS = "0123456789abcdef-"


class TimeTracker:
    """Time tracking operations over one timer and one entry repository."""

    def __init__(
        self,
        repository: Optional[EntryRepository] = None,
        timer: Optional[TimerController] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize time tracker.

        Args:
            repository: Entry repository. Creates an in-memory one if None.
            timer: Timer controller. Creates one over ``repository`` if None.
            clock: Callable returning the current time
        """
        self.repository = repository or InMemoryEntryRepository()
        self._clock = clock or datetime.now
        self.timer = timer or TimerController(self.repository, clock=self._clock)

    def start(self, task_id: str) -> Optional[TimeEntry]:
        """Start timing a task, stopping any active timer first.

        Returns:
            Entry created for the previously active timer, if any
        """
        return self.timer.start(task_id)

    def pause(self) -> bool:
        return self.timer.pause()

    def resume(self) -> bool:
        return self.timer.resume()

    def stop(self) -> Optional[TimeEntry]:
        return self.timer.stop()

    def add_manual_entry(
        self,
        task_id: str,
        hours: int,
        minutes: int,
        description: str = "",
    ) -> TimeEntry:
        """Log time retroactively without running the timer.

        The real work window is unknown, so the entry is placed to end now:
        ``start_time = now - duration``.

        Args:
            task_id: Task the time was spent on
            hours: Whole hours, >= 0
            minutes: Minutes, 0-59
            description: Optional notes

        Returns:
            Created entry

        Raises:
            ValidationError: If hours or minutes are out of range, or the
                total is zero
        """
        if hours < 0:
            raise ValidationError("hours must not be negative")
        if not 0 <= minutes <= 59:
            raise ValidationError("minutes must be between 0 and 59")

        duration = timedelta(hours=hours, minutes=minutes)
        if duration <= timedelta(0):
            raise ValidationError("Duration must be greater than zero")

        end_time = self._clock()
        entry = TimeEntry(
            task_id=task_id,
            start_time=end_time - duration,
            end_time=end_time,
            description=description,
            manual_entry=True,
        )
        self.repository.create(entry)
        logger.info(f"Logged {entry.duration}s manually for task {task_id}")
        return entry

    def create_entry(
        self,
        task_id: str,
        start_time: datetime,
        end_time: datetime,
        description: str = "",
    ) -> TimeEntry:
        """Create an entry for a known work interval.

        Raises:
            ValidationError: If end_time is not after start_time
        """
        if end_time <= start_time:
            raise ValidationError("end_time must be after start_time")

        entry = TimeEntry(
            task_id=task_id,
            start_time=start_time,
            end_time=end_time,
            description=description,
            manual_entry=True,
        )
        self.repository.create(entry)
        logger.info(f"Created entry {entry.id} for task {task_id}")
        return entry

    def update_entry(
        self,
        entry_id: Union[str, UUID],
        task_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        description: Optional[str] = None,
    ) -> TimeEntry:
        """Replace an existing entry with an edited copy.

        Only the given fields change; the id is kept and the duration follows
        the new timestamps.

        Raises:
            EntryNotFoundError: If no entry has this id
            ValidationError: If the edited interval is invalid
        """
        uuid = self.resolve_entry_id(entry_id)
        current = self.repository.get(uuid)
        if current is None:
            raise EntryNotFoundError(uuid)

        changes: dict[str, object] = {}
        if task_id is not None:
            changes["task_id"] = task_id
        if start_time is not None:
            changes["start_time"] = start_time
        if end_time is not None:
            changes["end_time"] = end_time
        if description is not None:
            changes["description"] = description

        updated = replace(current, **changes)
        if updated.end_time <= updated.start_time:
            raise ValidationError("end_time must be after start_time")
        self.repository.update(updated)
        logger.info(f"Updated entry {uuid}")
        return updated

    def delete_entry(self, entry_id: Union[str, UUID]) -> bool:
        """Hard delete an entry.

        Returns:
            True if deleted, False if not found
        """
        try:
            uuid = self.resolve_entry_id(entry_id)
        except EntryNotFoundError:
            return False
        deleted = self.repository.delete(uuid)
        if deleted:
            logger.info(f"Deleted entry {uuid}")
        return deleted

    def resolve_entry_id(self, entry_id: Union[str, UUID]) -> UUID:
        """Full id of an entry from its id or a unique prefix of it.

        Raises:
            ValidationError: If the id is malformed or the prefix is ambiguous
            EntryNotFoundError: If no stored entry id starts with the prefix
        """
        if isinstance(entry_id, UUID):
            return entry_id
        try:
            return UUID(entry_id)
        except ValueError:
            pass

        prefix = entry_id.strip().lower()
        if len(prefix) < MIN_ID_PREFIX or prefix.strip(HEX_CHARS):
            raise ValidationError(f"Invalid entry id: {entry_id}")

        matches = [e.id for e in self.repository.query() if str(e.id).startswith(prefix)]
        if not matches:
            raise EntryNotFoundError(entry_id)
        if len(matches) > 1:
            raise ValidationError(f"Entry id prefix '{entry_id}' matches {len(matches)} entries")
        return matches[0]

    def get_entries(
        self,
        task_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[TimeEntry]:
        """Get entries, most recent first."""
        return self.repository.query(
            EntryQuery(task_id=task_id, start=start, end=end, limit=limit)
        )

    def total_time(self, task_id: str) -> int:
        """Total seconds logged against one task."""
        return sum(e.duration for e in self.get_entries(task_id=task_id))
