"""Exception hierarchy for the time tracking engine."""

from typing import Any, Optional


class TaskClockError(Exception):
    """Base class for all taskclock errors."""


class ValidationError(TaskClockError, ValueError):
    """Invalid input for an entry or a report request.

    Raised before any state is changed, so the caller can correct the input
    and try again.
    """


class InvalidStateTransition(TaskClockError):
    """A timer operation was requested in a state that does not support it.

    Pause and resume treat this as a no-op by default and only raise it when
    called with ``strict=True``.
    """

    def __init__(self, operation: str, state: Any):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} timer in state {getattr(state, 'value', state)}")


class RepositoryError(TaskClockError):
    """Persistence failure while creating, querying or deleting entries.

    Attributes:
        entry: The already computed entry that could not be saved, if any.
            Callers retry the save with it instead of recomputing.
    """

    def __init__(self, message: str, entry: Optional[Any] = None):
        super().__init__(message)
        self.entry = entry


class EntryNotFoundError(RepositoryError):
    """No entry exists with the requested id."""

    def __init__(self, entry_id: Any):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")
