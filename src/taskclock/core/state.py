"""Persistence of the active timer between processes."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from taskclock.core.errors import RepositoryError
from taskclock.core.models import ActiveTimer, TimeEntry

logger = logging.getLogger(__name__)


@dataclass
class TimerSnapshot:
    """What the timer controller needs to resume in a new process.

    Attributes:
        active_timer: The running or paused timer, if any
        pending_entry: A stopped entry whose save failed, if any
    """

    active_timer: Optional[ActiveTimer] = None
    pending_entry: Optional[TimeEntry] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_timer": self.active_timer.to_dict() if self.active_timer else None,
            "pending_entry": self.pending_entry.to_dict() if self.pending_entry else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerSnapshot":
        timer = data.get("active_timer")
        pending = data.get("pending_entry")
        return cls(
            active_timer=ActiveTimer.from_dict(timer) if timer else None,
            pending_entry=TimeEntry.from_dict(pending) if pending else None,
        )


class TimerStateStore:
    """Stores the timer snapshot as a JSON file.

    The active timer is not a time entry; it only becomes one when stopped.
    """

    def __init__(self, state_file: Optional[Path] = None):
        """Initialize state store.

        Args:
            state_file: Path to state file (default: ~/.taskclock/state/timer.json)
        """
        if state_file is None:
            state_file = Path.home() / ".taskclock" / "state" / "timer.json"

        self.state_file = Path(state_file)

    def load(self) -> TimerSnapshot:
        """Load the snapshot, or an empty one if no state was saved.

        An unreadable state file is logged and treated as empty.
        """
        if not self.state_file.exists():
            return TimerSnapshot()

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            snapshot = TimerSnapshot.from_dict(data)
            logger.debug(f"Timer state loaded from {self.state_file}")
            return snapshot
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load timer state: {e}")
            return TimerSnapshot()

    def save(self, snapshot: TimerSnapshot) -> None:
        """Atomically write the snapshot.

        Raises:
            RepositoryError: If the state file could not be written
        """
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file = self.state_file.with_suffix(".tmp")
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f, indent=2)
            temp_file.replace(self.state_file)
            logger.debug("Timer state saved")
        except OSError as e:
            logger.error(f"Failed to save timer state: {e}")
            raise RepositoryError(f"Cannot save timer state: {e}") from e

    def clear(self) -> None:
        """Delete the state file."""
        if self.state_file.exists():
            self.state_file.unlink()
            logger.info("Timer state cleared")
