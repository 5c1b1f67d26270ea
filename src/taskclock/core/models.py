"""Core data models for time tracking."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from taskclock.core.errors import ValidationError

UNKNOWN_TASK_TITLE = "Unknown Task"


@dataclass(frozen=True)
class TimeEntry:
    """Completed work interval recorded against a task.

    Entries are immutable. Editing an entry produces a new value with the
    same id which replaces the stored one.

    Attributes:
        task_id: Identifier of the task the time was spent on
        start_time: When the work started
        end_time: When the work ended
        description: Free text notes
        manual_entry: Whether this was logged manually instead of timed
        id: Unique identifier (UUID)
        created_at: When this record was created
    """

    task_id: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    manual_entry: bool = False
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.end_time < self.start_time:
            raise ValidationError(
                f"end_time ({self.end_time.isoformat()}) is before "
                f"start_time ({self.start_time.isoformat()})"
            )

    @property
    def duration(self) -> int:
        """Whole seconds between start and end."""
        return math.floor((self.end_time - self.start_time).total_seconds())

    @property
    def duration_hours(self) -> float:
        """Duration in hours rounded to 2 decimal places."""
        return round(self.duration / 3600, 2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": str(self.id),
            "task_id": self.task_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
            "description": self.description,
            "manual_entry": self.manual_entry,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        """Create TimeEntry from dictionary (CSV/JSON deserialization).

        ``duration`` is ignored on input; it is always recomputed from the
        timestamps.
        """
        manual = data.get("manual_entry", False)
        if isinstance(manual, str):
            manual = manual.strip().lower() == "true"
        return cls(
            id=UUID(str(data["id"])),
            task_id=str(data["task_id"]),
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(data["end_time"]),
            description=data.get("description") or "",
            manual_entry=bool(manual),
            created_at=(
                datetime.fromisoformat(data["created_at"])
                if data.get("created_at")
                else datetime.now()
            ),
        )


@dataclass(frozen=True)
class TaskInfo:
    """Descriptive attributes of a task, as supplied by the task lookup.

    Attributes:
        task_id: Task identifier
        title: Task title
        project: Project name (optional)
        assignee: Assigned user name (optional)
        tags: Task tags
        priority: Priority label (optional)
        status: Status label (optional)
    """

    task_id: str
    title: str = UNKNOWN_TASK_TITLE
    project: Optional[str] = None
    assignee: Optional[str] = None
    tags: tuple[str, ...] = ()
    priority: Optional[str] = None
    status: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV serialization."""
        return {
            "id": self.task_id,
            "title": self.title,
            "project": self.project or "",
            "assignee": self.assignee or "",
            "tags": ",".join(self.tags),
            "priority": self.priority or "",
            "status": self.status or "",
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskInfo":
        """Create TaskInfo from dictionary (CSV deserialization)."""
        return cls(
            task_id=str(data["id"]),
            title=data.get("title") or UNKNOWN_TASK_TITLE,
            project=data.get("project") or None,
            assignee=data.get("assignee") or None,
            tags=tuple(t.strip() for t in (data.get("tags") or "").split(",") if t.strip()),
            priority=data.get("priority") or None,
            status=data.get("status") or None,
        )


@dataclass(frozen=True)
class EnrichedTimeEntry:
    """A time entry joined with the attributes of its owning task."""

    entry: TimeEntry
    task: TaskInfo

    @property
    def id(self) -> UUID:
        return self.entry.id

    @property
    def task_id(self) -> str:
        return self.entry.task_id

    @property
    def start_time(self) -> datetime:
        return self.entry.start_time

    @property
    def end_time(self) -> datetime:
        return self.entry.end_time

    @property
    def duration(self) -> int:
        return self.entry.duration

    @property
    def description(self) -> str:
        return self.entry.description

    @property
    def task_title(self) -> str:
        return self.task.title

    @property
    def project(self) -> Optional[str]:
        return self.task.project

    @property
    def assignee(self) -> Optional[str]:
        return self.task.assignee

    @property
    def tags(self) -> tuple[str, ...]:
        return self.task.tags

    @property
    def priority(self) -> Optional[str]:
        return self.task.priority

    @property
    def status(self) -> Optional[str]:
        return self.task.status


class TimerState(Enum):
    """States of the single active timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class ActiveTimer:
    """The in-memory, unpersisted record of a running or paused session.

    Exactly one of ``is_running`` and ``paused_at`` is set at any time.

    Attributes:
        task_id: Task being timed
        start_time: When the timer was started
        is_running: True while running, False while paused
        paused_at: When the current pause began (None while running)
        paused: Total length of completed pauses
    """

    task_id: str
    start_time: datetime
    is_running: bool = True
    paused_at: Optional[datetime] = None
    paused: timedelta = field(default_factory=timedelta)

    @property
    def state(self) -> TimerState:
        return TimerState.RUNNING if self.is_running else TimerState.PAUSED

    def paused_until(self, now: datetime) -> timedelta:
        """Total paused time up to ``now``, including an open pause."""
        if self.paused_at is not None:
            return self.paused + max(timedelta(0), now - self.paused_at)
        return self.paused

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "task_id": self.task_id,
            "start_time": self.start_time.isoformat(),
            "is_running": self.is_running,
            "paused_at": self.paused_at.isoformat() if self.paused_at else None,
            "paused_seconds": self.paused.total_seconds(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActiveTimer":
        """Create ActiveTimer from dictionary (JSON deserialization)."""
        paused_at = data.get("paused_at")
        return cls(
            task_id=str(data["task_id"]),
            start_time=datetime.fromisoformat(data["start_time"]),
            is_running=paused_at is None,
            paused_at=datetime.fromisoformat(paused_at) if paused_at else None,
            paused=timedelta(seconds=float(data.get("paused_seconds", 0))),
        )


@dataclass(frozen=True)
class EntryQuery:
    """Repository-level selection of entries.

    Attributes:
        task_id: Only entries of this task
        start: Only entries starting at or after this instant
        end: Only entries starting at or before this instant
        limit: Maximum number of entries (most recent first)
    """

    task_id: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    limit: Optional[int] = None

    def matches(self, entry: TimeEntry) -> bool:
        if self.task_id is not None and entry.task_id != self.task_id:
            return False
        if self.start is not None and entry.start_time < self.start:
            return False
        if self.end is not None and entry.start_time > self.end:
            return False
        return True
