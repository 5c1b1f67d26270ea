"""Tests for time tracker."""

import tempfile
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator
from uuid import UUID, uuid4

import pytest  # type: ignore[import-not-found]

from conftest import FakeClock
from taskclock.core.errors import EntryNotFoundError, ValidationError
from taskclock.core.repository import CsvEntryRepository
from taskclock.core.tracker import TimeTracker


@pytest.fixture
def tracker(clock: FakeClock) -> Iterator[TimeTracker]:
    """Create a time tracker with temporary storage."""
    with tempfile.TemporaryDirectory() as tmpdir:
        repository = CsvEntryRepository(Path(tmpdir))
        yield TimeTracker(repository, clock=clock)


class TestTimeTracker:
    """Test TimeTracker timer delegation."""

    def test_start_and_stop(self, tracker: TimeTracker, clock: FakeClock) -> None:
        """Test that a timed session is persisted on stop."""
        tracker.start("42")
        clock.advance(90)
        entry = tracker.stop()

        assert entry is not None
        assert entry.duration == 90
        assert entry.manual_entry is False
        assert tracker.get_entries() == [entry]

    def test_switch_tasks(self, tracker: TimeTracker, clock: FakeClock) -> None:
        """Test that starting another task records the first one."""
        tracker.start("1")
        clock.advance(60)
        previous = tracker.start("2")
        clock.advance(30)
        last = tracker.stop()

        assert previous is not None
        assert previous.task_id == "1"
        assert last is not None
        assert last.task_id == "2"
        assert [e.task_id for e in tracker.get_entries()] == ["2", "1"]

    def test_pause_resume(self, tracker: TimeTracker, clock: FakeClock) -> None:
        """Test pause and resume through the tracker."""
        tracker.start("1")
        clock.advance(10)
        assert tracker.pause() is True
        clock.advance(10)
        assert tracker.resume() is True
        clock.advance(10)

        entry = tracker.stop()
        assert entry is not None
        assert entry.duration == 20

    def test_stop_when_idle(self, tracker: TimeTracker) -> None:
        """Test that stopping without a timer returns None."""
        assert tracker.stop() is None
        assert tracker.get_entries() == []


class TestManualEntry:
    """Test manual time logging."""

    def test_add_manual_entry(self, tracker: TimeTracker, clock: FakeClock) -> None:
        """Test that the entry ends now and lasts the given time."""
        entry = tracker.add_manual_entry("7", hours=1, minutes=30, description="Review")

        assert entry.duration == 5400
        assert entry.end_time == clock.now
        assert entry.start_time == clock.now - timedelta(seconds=5400)
        assert entry.manual_entry is True
        assert entry.description == "Review"
        assert tracker.get_entries(task_id="7") == [entry]

    def test_minutes_only(self, tracker: TimeTracker) -> None:
        """Test logging minutes without hours."""
        entry = tracker.add_manual_entry("7", hours=0, minutes=45)
        assert entry.duration == 2700

    def test_zero_duration_rejected(self, tracker: TimeTracker) -> None:
        """Test that a zero duration creates nothing."""
        with pytest.raises(ValidationError, match="greater than zero"):
            tracker.add_manual_entry("7", hours=0, minutes=0)
        assert tracker.get_entries() == []

    def test_negative_hours_rejected(self, tracker: TimeTracker) -> None:
        """Test that negative hours are rejected."""
        with pytest.raises(ValidationError):
            tracker.add_manual_entry("7", hours=-1, minutes=30)

    @pytest.mark.parametrize("minutes", [-1, 60, 90])
    def test_minutes_out_of_range_rejected(self, tracker: TimeTracker, minutes: int) -> None:
        """Test that minutes must be 0-59."""
        with pytest.raises(ValidationError):
            tracker.add_manual_entry("7", hours=1, minutes=minutes)

    def test_manual_entry_does_not_touch_timer(
        self, tracker: TimeTracker, clock: FakeClock
    ) -> None:
        """Test that manual logging leaves a running timer alone."""
        tracker.start("1")
        clock.advance(60)
        tracker.add_manual_entry("2", hours=2, minutes=0)

        assert tracker.timer.is_active
        active = tracker.timer.active_timer
        assert active is not None
        assert active.task_id == "1"


class TestEntryEditing:
    """Test create, update and delete of entries."""

    def test_create_entry(self, tracker: TimeTracker) -> None:
        """Test creating an entry for a known interval."""
        start = datetime(2024, 1, 1, 9, 0)
        entry = tracker.create_entry("1", start, start + timedelta(hours=2), "Workshop")

        assert entry.duration == 7200
        assert tracker.repository.get(entry.id) == entry

    def test_create_entry_rejects_empty_interval(self, tracker: TimeTracker) -> None:
        """Test that end must be after start."""
        start = datetime(2024, 1, 1, 9, 0)
        with pytest.raises(ValidationError):
            tracker.create_entry("1", start, start)

    def test_update_entry(self, tracker: TimeTracker) -> None:
        """Test that editing keeps the id and recomputes the duration."""
        start = datetime(2024, 1, 1, 9, 0)
        entry = tracker.create_entry("1", start, start + timedelta(hours=1))

        updated = tracker.update_entry(
            str(entry.id),
            end_time=start + timedelta(hours=3),
            description="Longer",
        )

        assert updated.id == entry.id
        assert updated.duration == 10800
        assert updated.description == "Longer"
        assert tracker.repository.get(entry.id) == updated

    def test_update_entry_invalid_interval(self, tracker: TimeTracker) -> None:
        """Test that an edit producing end before start is rejected."""
        start = datetime(2024, 1, 1, 9, 0)
        entry = tracker.create_entry("1", start, start + timedelta(hours=1))

        with pytest.raises(ValidationError):
            tracker.update_entry(entry.id, end_time=start - timedelta(minutes=1))
        assert tracker.repository.get(entry.id) == entry

    def test_update_entry_empty_interval(self, tracker: TimeTracker) -> None:
        """Test that an edit making end equal to start is rejected."""
        start = datetime(2024, 1, 1, 9, 0)
        entry = tracker.create_entry("1", start, start + timedelta(hours=1))

        with pytest.raises(ValidationError, match="after start_time"):
            tracker.update_entry(entry.id, end_time=start)
        assert tracker.repository.get(entry.id) == entry

    def test_update_unknown_entry(self, tracker: TimeTracker) -> None:
        """Test that updating a missing entry raises."""
        with pytest.raises(EntryNotFoundError):
            tracker.update_entry(uuid4(), description="x")

    def test_update_with_bad_id(self, tracker: TimeTracker) -> None:
        """Test that a malformed id is a validation error."""
        with pytest.raises(ValidationError, match="Invalid entry id"):
            tracker.update_entry("not-a-uuid", description="x")

    def test_delete_entry(self, tracker: TimeTracker) -> None:
        """Test hard deleting an entry."""
        entry = tracker.add_manual_entry("1", hours=1, minutes=0)

        assert tracker.delete_entry(str(entry.id)) is True
        assert tracker.get_entries() == []
        assert tracker.delete_entry(entry.id) is False

    def test_short_id_prefix(self, tracker: TimeTracker) -> None:
        """Test that edit and delete accept the short id shown by the log."""
        entry = tracker.add_manual_entry("1", hours=1, minutes=0)
        prefix = str(entry.id)[:8]

        assert tracker.resolve_entry_id(prefix.upper()) == entry.id
        updated = tracker.update_entry(prefix, description="Short id")
        assert updated.id == entry.id
        assert tracker.delete_entry(prefix) is True
        assert tracker.delete_entry(prefix) is False

    def test_unknown_id_prefix(self, tracker: TimeTracker) -> None:
        """Test that a prefix matching nothing is not found."""
        tracker.add_manual_entry("1", hours=1, minutes=0)
        entries = tracker.get_entries()
        unused = next(c for c in "0123456789abcdef" if not str(entries[0].id).startswith(c))

        with pytest.raises(EntryNotFoundError):
            tracker.update_entry(unused * 8, description="x")

    def test_ambiguous_id_prefix(self, tracker: TimeTracker) -> None:
        """Test that a prefix shared by two entries is rejected."""
        start = datetime(2024, 1, 1, 9, 0)
        first = tracker.create_entry("1", start, start + timedelta(hours=1))
        second = tracker.create_entry("1", start, start + timedelta(hours=1))
        tracker.repository.delete(second.id)
        twin = replace(second, id=UUID(str(first.id)[:8] + str(second.id)[8:]))
        tracker.repository.create(twin)

        with pytest.raises(ValidationError, match="matches 2 entries"):
            tracker.resolve_entry_id(str(first.id)[:8])
        assert tracker.resolve_entry_id(str(twin.id)) == twin.id


class TestQueries:
    """Test entry queries."""

    def test_get_entries_filters_and_limits(self, tracker: TimeTracker) -> None:
        """Test filtering by task and date and limiting results."""
        base = datetime(2024, 1, 1, 9, 0)
        for day in range(5):
            start = base + timedelta(days=day)
            tracker.create_entry("1", start, start + timedelta(minutes=30))
        other = tracker.create_entry("2", base, base + timedelta(minutes=10))

        assert other not in tracker.get_entries(task_id="1")
        assert len(tracker.get_entries(task_id="1")) == 5

        recent = tracker.get_entries(limit=2)
        assert [e.start_time for e in recent] == [
            base + timedelta(days=4),
            base + timedelta(days=3),
        ]

        window = tracker.get_entries(
            start=base + timedelta(days=1), end=base + timedelta(days=2)
        )
        assert len(window) == 2

    def test_total_time(self, tracker: TimeTracker) -> None:
        """Test summing the time logged on one task."""
        tracker.add_manual_entry("1", hours=1, minutes=0)
        tracker.add_manual_entry("1", hours=0, minutes=15)
        tracker.add_manual_entry("2", hours=3, minutes=0)

        assert tracker.total_time("1") == 4500
        assert tracker.total_time("missing") == 0
