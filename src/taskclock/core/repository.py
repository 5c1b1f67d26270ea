"""Entry persistence and task lookup with atomic CSV storage."""

import csv
import logging
import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional
from uuid import UUID

from taskclock.core.errors import EntryNotFoundError, RepositoryError
from taskclock.core.models import EntryQuery, TaskInfo, TimeEntry

logger = logging.getLogger(__name__)

ENTRY_FIELDS = [
    "id",
    "task_id",
    "start_time",
    "end_time",
    "duration",
    "description",
    "manual_entry",
    "created_at",
]

TASK_FIELDS = ["id", "title", "project", "assignee", "tags", "priority", "status"]


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_NBLCK if exclusive else msvcrt.LK_NBRLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way."""
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


def _select(entries: Iterable[TimeEntry], query: Optional[EntryQuery]) -> list[TimeEntry]:
    """Apply a query to entries, most recent first."""
    query = query or EntryQuery()
    selected = [e for e in entries if query.matches(e)]
    selected.sort(key=lambda e: e.start_time, reverse=True)
    if query.limit:
        selected = selected[: query.limit]
    return selected


class EntryRepository(ABC):
    """Narrow persistence interface the time tracking engine depends on."""

    @abstractmethod
    def create(self, entry: TimeEntry) -> UUID:
        """Persist a new entry and return its id.

        Raises:
            RepositoryError: If the entry could not be written
        """

    @abstractmethod
    def update(self, entry: TimeEntry) -> None:
        """Replace the stored entry that has the same id.

        Raises:
            EntryNotFoundError: If no entry has this id
        """

    @abstractmethod
    def get(self, entry_id: UUID) -> Optional[TimeEntry]:
        """Return the entry with this id, or None."""

    @abstractmethod
    def query(self, query: Optional[EntryQuery] = None) -> list[TimeEntry]:
        """Return entries matching the query, most recent first."""

    @abstractmethod
    def delete(self, entry_id: UUID) -> bool:
        """Hard delete an entry. Returns False if it did not exist."""


class InMemoryEntryRepository(EntryRepository):
    """Entry repository backed by a dict, kept in insertion order."""

    def __init__(self, entries: Optional[Iterable[TimeEntry]] = None):
        self._entries: dict[UUID, TimeEntry] = {}
        for entry in entries or []:
            self._entries[entry.id] = entry

    def create(self, entry: TimeEntry) -> UUID:
        if entry.id in self._entries:
            raise RepositoryError(f"Entry already exists: {entry.id}", entry=entry)
        self._entries[entry.id] = entry
        return entry.id

    def update(self, entry: TimeEntry) -> None:
        if entry.id not in self._entries:
            raise EntryNotFoundError(entry.id)
        self._entries[entry.id] = entry

    def get(self, entry_id: UUID) -> Optional[TimeEntry]:
        return self._entries.get(entry_id)

    def query(self, query: Optional[EntryQuery] = None) -> list[TimeEntry]:
        return _select(self._entries.values(), query)

    def delete(self, entry_id: UUID) -> bool:
        return self._entries.pop(entry_id, None) is not None


class CsvEntryRepository(EntryRepository):
    """Manages CSV storage for time entries with atomic operations."""

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the repository.

        Args:
            data_dir: Custom data directory. Defaults to ~/.taskclock/data
        """
        if data_dir is None:
            data_dir = Path.home() / ".taskclock" / "data"

        self.data_dir = Path(data_dir)
        self.entries_file = self.data_dir / "entries.csv"

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            if not self.entries_file.exists():
                self._write_csv_atomic(self.entries_file, ENTRY_FIELDS, [])
        except OSError as e:
            raise RepositoryError(f"Cannot initialize storage in {self.data_dir}: {e}") from e

    def _write_csv_atomic(
        self, file_path: Path, fieldnames: list[str], rows: list[dict[str, Any]]
    ) -> None:
        """Write CSV file atomically using temporary file and rename.

        Args:
            file_path: Target file path
            fieldnames: CSV field names
            rows: List of row dictionaries
        """
        temp_file = file_path.with_suffix(".tmp")

        try:
            with open(temp_file, "w", newline="", encoding="utf-8") as f:
                _lock_file(f, exclusive=True)

                writer = csv.DictWriter(f, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(rows)

                f.flush()
                os.fsync(f.fileno())

                _unlock_file(f)

            temp_file.replace(file_path)

        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def _read_csv(self, file_path: Path) -> list[dict[str, Any]]:
        """Read CSV file with a shared lock."""
        if not file_path.exists():
            return []

        with open(file_path, newline="", encoding="utf-8") as f:
            _lock_file(f, exclusive=False)

            try:
                reader = csv.DictReader(f)
                rows = list(reader)
            finally:
                _unlock_file(f)

        return rows

    def _load(self) -> list[TimeEntry]:
        try:
            rows = self._read_csv(self.entries_file)
            return [TimeEntry.from_dict(row) for row in rows]
        except (OSError, csv.Error, KeyError, ValueError) as e:
            logger.error(f"Failed to read entries from {self.entries_file}: {e}")
            raise RepositoryError(f"Cannot read entries: {e}") from e

    def _store(self, entries: list[TimeEntry], failed: Optional[TimeEntry] = None) -> None:
        try:
            self._write_csv_atomic(
                self.entries_file, ENTRY_FIELDS, [e.to_dict() for e in entries]
            )
        except (OSError, csv.Error) as e:
            logger.error(f"Failed to write entries to {self.entries_file}: {e}")
            raise RepositoryError(f"Cannot write entries: {e}", entry=failed) from e

    def create(self, entry: TimeEntry) -> UUID:
        entries = self._load()
        if any(e.id == entry.id for e in entries):
            raise RepositoryError(f"Entry already exists: {entry.id}", entry=entry)
        entries.append(entry)
        self._store(entries, failed=entry)
        logger.debug(f"Stored entry {entry.id} for task {entry.task_id}")
        return entry.id

    def update(self, entry: TimeEntry) -> None:
        entries = self._load()
        for i, existing in enumerate(entries):
            if existing.id == entry.id:
                entries[i] = entry
                break
        else:
            raise EntryNotFoundError(entry.id)
        self._store(entries, failed=entry)

    def get(self, entry_id: UUID) -> Optional[TimeEntry]:
        for entry in self._load():
            if entry.id == entry_id:
                return entry
        return None

    def query(self, query: Optional[EntryQuery] = None) -> list[TimeEntry]:
        return _select(self._load(), query)

    def delete(self, entry_id: UUID) -> bool:
        entries = self._load()
        remaining = [e for e in entries if e.id != entry_id]
        if len(remaining) == len(entries):
            return False
        self._store(remaining)
        return True


class TaskLookup(ABC):
    """Read-only source of task attributes used to enrich entries."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[TaskInfo]:
        """Return the task's attributes, or None if the task is unknown."""

    @abstractmethod
    def all(self) -> list[TaskInfo]:
        """Return every known task."""


class InMemoryTaskLookup(TaskLookup):
    """Task lookup over a fixed collection of tasks."""

    def __init__(self, tasks: Optional[Iterable[TaskInfo]] = None):
        self._tasks = {task.task_id: task for task in tasks or []}

    def add(self, task: TaskInfo) -> None:
        self._tasks[task.task_id] = task

    def get(self, task_id: str) -> Optional[TaskInfo]:
        return self._tasks.get(task_id)

    def all(self) -> list[TaskInfo]:
        return list(self._tasks.values())


class CsvTaskLookup(TaskLookup):
    """Task lookup reading an externally maintained ``tasks.csv``.

    Columns: id, title, project, assignee, tags (comma separated),
    priority, status. A missing file means no tasks are known.
    """

    def __init__(self, tasks_file: Path):
        self.tasks_file = Path(tasks_file)
        self._cache: Optional[dict[str, TaskInfo]] = None

    def _tasks(self) -> dict[str, TaskInfo]:
        if self._cache is None:
            if not self.tasks_file.exists():
                logger.debug(f"No task file at {self.tasks_file}")
                self._cache = {}
            else:
                try:
                    with open(self.tasks_file, newline="", encoding="utf-8") as f:
                        rows = list(csv.DictReader(f))
                    tasks = [TaskInfo.from_dict(row) for row in rows]
                except (OSError, csv.Error, KeyError) as e:
                    raise RepositoryError(f"Cannot read tasks: {e}") from e
                self._cache = {task.task_id: task for task in tasks}
        return self._cache

    def get(self, task_id: str) -> Optional[TaskInfo]:
        return self._tasks().get(task_id)

    def all(self) -> list[TaskInfo]:
        return list(self._tasks().values())
