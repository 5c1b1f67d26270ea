"""Filtering, grouping and summing of enriched time entries."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Optional, Union

from taskclock.core.errors import ValidationError
from taskclock.core.models import EnrichedTimeEntry, TaskInfo, TimeEntry
from taskclock.core.repository import TaskLookup

UNSPECIFIED = "Unspecified"

# Filter values that select everything on their dimension.
ALL_SENTINELS = frozenset(
    {
        "All",
        "All Projects",
        "All Users",
        "All Assignees",
        "All Tags",
        "All Priorities",
    }
)

DateLike = Union[date, datetime]


class Dimension(str, Enum):
    """Dimensions entries can be grouped by."""

    PROJECT = "project"
    ASSIGNEE = "assignee"
    TASK = "task"
    STATUS = "status"
    PRIORITY = "priority"
    DATE = "date"

    @classmethod
    def parse(cls, value: Union[str, "Dimension"]) -> "Dimension":
        """Resolve a dimension name. ``user`` is accepted for ``assignee``.

        Raises:
            ValidationError: If the name is not a known dimension
        """
        if isinstance(value, Dimension):
            return value
        name = value.strip().lower()
        if name == "user":
            return cls.ASSIGNEE
        try:
            return cls(name)
        except ValueError:
            choices = ", ".join(d.value for d in cls)
            raise ValidationError(f"Unknown group-by dimension '{value}'. Use one of: {choices}")


@dataclass(frozen=True)
class FilterSpec:
    """Criteria combined with AND when filtering entries.

    A value of None or an "All ..." sentinel leaves that dimension
    unfiltered. Both ends of the date range are inclusive; the end date
    covers the whole day.
    """

    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None
    project: Optional[str] = None
    assignee: Optional[str] = None
    tag: Optional[str] = None
    priority: Optional[str] = None


def start_of_day(value: DateLike) -> datetime:
    """First instant of the given day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def end_of_day(value: DateLike) -> datetime:
    """Last instant of the given day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.max)


def to_hours(seconds: int) -> float:
    """Convert seconds to hours rounded to 2 decimal places."""
    return round(seconds / 3600, 2)


def _is_wildcard(value: Optional[str]) -> bool:
    return value is None or value in ALL_SENTINELS


class AggregationEngine:
    """Deterministic filter, group-by and sum over enriched entries.

    Grouping always returns seconds; converting to hours is left to the
    presentation layer (see ``to_hours``).
    """

    def enrich(
        self, entries: Iterable[TimeEntry], lookup: TaskLookup
    ) -> list[EnrichedTimeEntry]:
        """Join each entry with its task's attributes.

        Entries of unknown tasks are kept and joined with an "Unknown Task"
        placeholder.
        """
        cache: dict[str, TaskInfo] = {}
        enriched = []
        for entry in entries:
            task = cache.get(entry.task_id)
            if task is None:
                task = lookup.get(entry.task_id) or TaskInfo(task_id=entry.task_id)
                cache[entry.task_id] = task
            enriched.append(EnrichedTimeEntry(entry=entry, task=task))
        return enriched

    def filter(
        self, entries: Iterable[EnrichedTimeEntry], spec: FilterSpec
    ) -> list[EnrichedTimeEntry]:
        """Return the entries matching every criterion, in input order."""
        start = start_of_day(spec.start_date) if spec.start_date is not None else None
        end = end_of_day(spec.end_date) if spec.end_date is not None else None

        filtered = []
        for entry in entries:
            if start is not None and entry.start_time < start:
                continue
            if end is not None and entry.start_time > end:
                continue
            if not _is_wildcard(spec.project) and entry.project != spec.project:
                continue
            if not _is_wildcard(spec.assignee) and entry.assignee != spec.assignee:
                continue
            if not _is_wildcard(spec.tag) and spec.tag not in entry.tags:
                continue
            if not _is_wildcard(spec.priority) and entry.priority != spec.priority:
                continue
            filtered.append(entry)

        return filtered

    @staticmethod
    def key_for(entry: EnrichedTimeEntry, dimension: Union[str, Dimension]) -> str:
        """Grouping key of an entry; missing values map to "Unspecified"."""
        dimension = Dimension.parse(dimension)
        if dimension is Dimension.DATE:
            return entry.start_time.strftime("%Y-%m-%d")

        value = {
            Dimension.PROJECT: entry.project,
            Dimension.ASSIGNEE: entry.assignee,
            Dimension.TASK: entry.task_title,
            Dimension.STATUS: entry.status,
            Dimension.PRIORITY: entry.priority,
        }[dimension]
        return value if value else UNSPECIFIED

    def group_by(
        self, entries: Iterable[EnrichedTimeEntry], dimension: Union[str, Dimension]
    ) -> dict[str, int]:
        """Total seconds per key of the given dimension.

        Every entry lands in exactly one bucket, so the bucket totals add up
        to the total duration of the input.
        """
        dimension = Dimension.parse(dimension)
        totals: dict[str, int] = defaultdict(int)
        for entry in entries:
            totals[self.key_for(entry, dimension)] += entry.duration
        return dict(totals)

    def top(
        self,
        entries: Iterable[EnrichedTimeEntry],
        dimension: Union[str, Dimension],
        limit: int = 10,
    ) -> list[tuple[str, int]]:
        """Largest buckets first, ties kept in discovery order."""
        buckets = self.group_by(entries, dimension)
        ranked = sorted(buckets.items(), key=lambda item: item[1], reverse=True)
        return ranked[:limit]

    def total_seconds(self, entries: Iterable[EnrichedTimeEntry]) -> int:
        return sum(entry.duration for entry in entries)

    def daily_distribution(
        self,
        entries: Iterable[EnrichedTimeEntry],
        start_date: DateLike,
        end_date: DateLike,
    ) -> dict[str, int]:
        """Seconds per day for every day of an inclusive range.

        Days without entries are present with zero; entries outside the
        range are ignored.
        """
        first = start_date.date() if isinstance(start_date, datetime) else start_date
        last = end_date.date() if isinstance(end_date, datetime) else end_date

        days: dict[str, int] = {}
        current = first
        while current <= last:
            days[current.strftime("%Y-%m-%d")] = 0
            current += timedelta(days=1)

        for entry in entries:
            key = self.key_for(entry, Dimension.DATE)
            if key in days:
                days[key] += entry.duration

        return days


def unique_tags(tasks: Iterable[TaskInfo]) -> list[str]:
    """Sorted set of all tags used by the given tasks."""
    return sorted({tag for task in tasks for tag in task.tags})
