"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest  # type: ignore[import-not-found]

from taskclock.core.models import TaskInfo, TimeEntry


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")


class FakeClock:
    """Manually advanced clock for deterministic timer tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at 2024-01-01 09:00:00."""
    return FakeClock(datetime(2024, 1, 1, 9, 0, 0))


@pytest.fixture
def tasks() -> list[TaskInfo]:
    """A small set of tasks across two projects."""
    return [
        TaskInfo(
            task_id="1",
            title="Design homepage",
            project="Website",
            assignee="Alice",
            tags=("Design", "UI/UX"),
            priority="High",
            status="In Progress",
        ),
        TaskInfo(
            task_id="2",
            title="Fix login bug",
            project="Website",
            assignee="Bob",
            tags=("Bug", "Frontend"),
            priority="Urgent",
            status="Done",
        ),
        TaskInfo(
            task_id="3",
            title="Sprint planning",
            project="Internal",
            assignee="Alice",
            tags=("Meeting",),
            priority="Medium",
            status="Done",
        ),
        TaskInfo(task_id="4", title="Loose ends"),
    ]


def make_entry(task_id: str, start: datetime, seconds: int, description: str = "") -> TimeEntry:
    """Entry of ``seconds`` length starting at ``start``."""
    return TimeEntry(
        task_id=task_id,
        start_time=start,
        end_time=start + timedelta(seconds=seconds),
        description=description,
    )
