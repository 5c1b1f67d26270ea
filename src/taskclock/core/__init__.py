"""Core functionality for time tracking."""

from taskclock.core.models import EnrichedTimeEntry, TaskInfo, TimeEntry
from taskclock.core.timer import TimerController
from taskclock.core.tracker import TimeTracker

__all__ = ["TimeEntry", "TaskInfo", "EnrichedTimeEntry", "TimerController", "TimeTracker"]
