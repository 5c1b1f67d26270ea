"""Tests for timer state persistence."""

import json
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator

import pytest  # type: ignore[import-not-found]

from conftest import make_entry
from taskclock.core.models import ActiveTimer
from taskclock.core.state import TimerSnapshot, TimerStateStore


@pytest.fixture
def store() -> Iterator[TimerStateStore]:
    """Create a state store in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield TimerStateStore(Path(tmpdir) / "state" / "timer.json")


class TestTimerStateStore:
    """Test TimerStateStore."""

    def test_load_without_file(self, store: TimerStateStore) -> None:
        """Test that a missing file gives an empty snapshot."""
        snapshot = store.load()
        assert snapshot.active_timer is None
        assert snapshot.pending_entry is None

    def test_save_and_load(self, store: TimerStateStore) -> None:
        """Test persisting a paused timer and a pending entry."""
        timer = ActiveTimer(
            task_id="1",
            start_time=datetime(2024, 1, 1, 9, 0),
            is_running=False,
            paused_at=datetime(2024, 1, 1, 9, 30),
            paused=timedelta(minutes=5),
        )
        pending = make_entry("2", datetime(2024, 1, 1, 8, 0), 900)

        store.save(TimerSnapshot(timer, pending))
        loaded = store.load()

        assert loaded.active_timer == timer
        assert loaded.pending_entry == pending
        assert not store.state_file.with_suffix(".tmp").exists()

    def test_file_is_json(self, store: TimerStateStore) -> None:
        """Test the on-disk format."""
        store.save(TimerSnapshot(ActiveTimer("1", datetime(2024, 1, 1, 9, 0))))

        with open(store.state_file, encoding="utf-8") as f:
            data = json.load(f)

        assert data["active_timer"]["task_id"] == "1"
        assert data["active_timer"]["paused_at"] is None
        assert data["pending_entry"] is None

    def test_corrupt_file_is_ignored(self, store: TimerStateStore) -> None:
        """Test that an unreadable state file is treated as empty."""
        store.state_file.parent.mkdir(parents=True, exist_ok=True)
        store.state_file.write_text("{not json", encoding="utf-8")

        snapshot = store.load()

        assert snapshot.active_timer is None

    def test_clear(self, store: TimerStateStore) -> None:
        """Test deleting the state file."""
        store.save(TimerSnapshot())
        assert store.state_file.exists()

        store.clear()

        assert not store.state_file.exists()
        store.clear()
