"""Tests for entry repositories and task lookups."""

import csv
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator
from unittest.mock import patch
from uuid import uuid4

import pytest  # type: ignore[import-not-found]

from conftest import make_entry
from taskclock.core.errors import EntryNotFoundError, RepositoryError
from taskclock.core.models import EntryQuery, TaskInfo
from taskclock.core.repository import (
    ENTRY_FIELDS,
    TASK_FIELDS,
    CsvEntryRepository,
    CsvTaskLookup,
    InMemoryEntryRepository,
    InMemoryTaskLookup,
)

BASE = datetime(2024, 1, 1, 9, 0)


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def csv_repository(temp_dir: Path) -> CsvEntryRepository:
    return CsvEntryRepository(temp_dir / "data")


@pytest.fixture(params=["memory", "csv"])
def repository(request: pytest.FixtureRequest, temp_dir: Path):  # type: ignore[no-untyped-def]
    """Each repository implementation."""
    if request.param == "memory":
        return InMemoryEntryRepository()
    return CsvEntryRepository(temp_dir / "data")


class TestEntryRepository:
    """Behavior shared by all entry repositories."""

    def test_create_and_get(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test that created entries can be read back."""
        entry = make_entry("1", BASE, 600, "First")

        assert repository.create(entry) == entry.id
        assert repository.get(entry.id) == entry

    def test_get_missing(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test reading an unknown id."""
        assert repository.get(uuid4()) is None

    def test_create_duplicate_raises(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test that an id cannot be created twice."""
        entry = make_entry("1", BASE, 600)
        repository.create(entry)

        with pytest.raises(RepositoryError) as exc_info:
            repository.create(entry)
        assert exc_info.value.entry == entry

    def test_query_most_recent_first(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test ordering and limit."""
        entries = [make_entry("1", BASE + timedelta(hours=i), 60) for i in range(4)]
        for entry in entries:
            repository.create(entry)

        assert repository.query() == list(reversed(entries))
        assert repository.query(EntryQuery(limit=2)) == [entries[3], entries[2]]

    def test_query_by_task_and_range(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test query filters."""
        first = make_entry("1", BASE, 60)
        second = make_entry("2", BASE + timedelta(days=1), 60)
        repository.create(first)
        repository.create(second)

        assert repository.query(EntryQuery(task_id="2")) == [second]
        assert repository.query(EntryQuery(start=BASE + timedelta(hours=1))) == [second]
        assert repository.query(EntryQuery(end=BASE)) == [first]

    def test_update(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test replacing an entry by id."""
        entry = make_entry("1", BASE, 60)
        repository.create(entry)
        edited = replace(entry, end_time=BASE + timedelta(seconds=120))

        repository.update(edited)

        assert repository.get(entry.id) == edited
        assert len(repository.query()) == 1

    def test_update_missing_raises(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test updating an entry that was never created."""
        with pytest.raises(EntryNotFoundError):
            repository.update(make_entry("1", BASE, 60))

    def test_delete(self, repository) -> None:  # type: ignore[no-untyped-def]
        """Test hard delete."""
        entry = make_entry("1", BASE, 60)
        repository.create(entry)

        assert repository.delete(entry.id) is True
        assert repository.get(entry.id) is None
        assert repository.delete(entry.id) is False


class TestCsvEntryRepository:
    """CSV specific behavior."""

    def test_initialization_creates_file(self, temp_dir: Path) -> None:
        """Test that the entries file is created with a header."""
        repository = CsvEntryRepository(temp_dir / "data")

        assert repository.entries_file.exists()
        with open(repository.entries_file, newline="", encoding="utf-8") as f:
            header = next(csv.reader(f))
        assert header == ENTRY_FIELDS

    def test_persists_across_instances(self, temp_dir: Path) -> None:
        """Test that a new repository reads earlier writes."""
        entry = make_entry("1", BASE, 60, 'Quote " and, comma')
        CsvEntryRepository(temp_dir / "data").create(entry)

        assert CsvEntryRepository(temp_dir / "data").get(entry.id) == entry

    def test_no_temp_file_left(self, csv_repository: CsvEntryRepository) -> None:
        """Test that atomic writes clean up."""
        csv_repository.create(make_entry("1", BASE, 60))
        assert not csv_repository.entries_file.with_suffix(".tmp").exists()

    def test_write_failure_carries_entry(self, csv_repository: CsvEntryRepository) -> None:
        """Test that a failed write reports which entry was not saved."""
        entry = make_entry("1", BASE, 60)

        with patch.object(csv_repository, "_write_csv_atomic", side_effect=OSError("disk full")):
            with pytest.raises(RepositoryError, match="disk full") as exc_info:
                csv_repository.create(entry)

        assert exc_info.value.entry == entry
        assert csv_repository.get(entry.id) is None

    def test_corrupt_file_raises(self, csv_repository: CsvEntryRepository) -> None:
        """Test that unreadable rows surface as a repository error."""
        with open(csv_repository.entries_file, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=ENTRY_FIELDS)
            writer.writeheader()
            writer.writerow({"id": "bogus", "task_id": "1", "start_time": "x", "end_time": "y"})

        with pytest.raises(RepositoryError):
            csv_repository.query()


class TestTaskLookup:
    """Test task lookups."""

    def test_in_memory(self, tasks: list[TaskInfo]) -> None:
        """Test the in-memory lookup."""
        lookup = InMemoryTaskLookup(tasks)

        assert lookup.get("2") == tasks[1]
        assert lookup.get("missing") is None
        assert len(lookup.all()) == 4

        lookup.add(TaskInfo(task_id="9", title="Added"))
        assert lookup.get("9") is not None

    def test_csv_lookup(self, temp_dir: Path, tasks: list[TaskInfo]) -> None:
        """Test reading tasks.csv."""
        tasks_file = temp_dir / "tasks.csv"
        with open(tasks_file, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=TASK_FIELDS)
            writer.writeheader()
            writer.writerows(task.to_dict() for task in tasks)

        lookup = CsvTaskLookup(tasks_file)

        assert lookup.get("1") == tasks[0]
        assert lookup.get("4") == tasks[3]
        assert [t.task_id for t in lookup.all()] == ["1", "2", "3", "4"]

    def test_csv_lookup_missing_file(self, temp_dir: Path) -> None:
        """Test that a missing tasks file means no tasks."""
        lookup = CsvTaskLookup(temp_dir / "tasks.csv")

        assert lookup.get("1") is None
        assert lookup.all() == []
