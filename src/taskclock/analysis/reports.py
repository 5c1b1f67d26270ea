"""Report rendering for time tracking data."""

from datetime import date
from typing import Optional

from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]
from rich.text import Text  # type: ignore[import-not-found]

from taskclock.analysis.aggregation import AggregationEngine, Dimension, to_hours
from taskclock.core.models import EnrichedTimeEntry


def format_duration(seconds: Optional[int]) -> str:
    """Format seconds as a short human-readable duration.

    Examples: ``0`` -> "0m", ``45`` -> "45s", ``5400`` -> "1h 30m",
    ``7200`` -> "2h".
    """
    if seconds is None:
        return "ongoing"
    if seconds == 0:
        return "0m"

    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours == 0 and minutes == 0:
        return f"{secs}s"

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or (hours > 0 and secs > 0):
        parts.append(f"{minutes}m")
    return " ".join(parts)


class ReportGenerator:
    """Render summaries of enriched entries to a rich console."""

    def __init__(
        self,
        console: Optional[Console] = None,
        engine: Optional[AggregationEngine] = None,
    ):
        """Initialize report generator.

        Args:
            console: Rich console for output. Creates default if None.
            engine: Aggregation engine. Creates default if None.
        """
        self.console = console or Console()
        self.engine = engine or AggregationEngine()

    def summary_report(
        self,
        entries: list[EnrichedTimeEntry],
        period_label: str = "Summary",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        top_n: int = 10,
    ) -> None:
        """Display totals, breakdowns and the top tasks.

        Args:
            entries: Filtered entries to analyze
            period_label: Label for the report period
            start_date: First day of the period, for the daily breakdown
            end_date: Last day of the period, for the daily breakdown
            top_n: Number of tasks in the top list
        """
        if not entries:
            self.console.print("[yellow]No entries found for this period[/yellow]")
            return

        total = self.engine.total_seconds(entries)

        self.console.print(f"\n[bold cyan]Time Report - {period_label}[/bold cyan]\n")

        overview_table = Table(show_header=False, box=None, padding=(0, 2))
        overview_table.add_column(style="dim")
        overview_table.add_column(style="bold")
        overview_table.add_row("Total Time:", format_duration(total))
        overview_table.add_row("Total Hours:", f"{to_hours(total):.2f}")
        overview_table.add_row("Entries:", str(len(entries)))
        overview_table.add_row("Tasks:", str(len({e.task_id for e in entries})))
        self.console.print(overview_table)
        self.console.print()

        for dimension, title in (
            (Dimension.PROJECT, "Time by Project"),
            (Dimension.ASSIGNEE, "Time by User"),
        ):
            ranked = self.engine.top(entries, dimension, limit=len(entries))
            self._print_breakdown(title, dimension.value.title(), ranked, total)

        top_tasks = self.engine.top(entries, Dimension.TASK, limit=top_n)
        self._print_breakdown(f"Top {top_n} Tasks", "Task", top_tasks, total, bars=False)

        if start_date is not None and end_date is not None:
            daily = self.engine.daily_distribution(entries, start_date, end_date)
            self._print_breakdown("Time by Day", "Date", list(daily.items()), total)

    def timeline_report(self, entries: list[EnrichedTimeEntry], day: date) -> None:
        """Display the entries of one day in start order."""
        day_entries = sorted(
            (e for e in entries if e.start_time.date() == day),
            key=lambda e: e.start_time,
        )

        if not day_entries:
            self.console.print(f"[yellow]No entries found for {day}[/yellow]")
            return

        self.console.print(f"\n[bold cyan]Timeline for {day}[/bold cyan]\n")

        timeline_table = Table()
        timeline_table.add_column("Time", style="cyan", width=20)
        timeline_table.add_column("Duration", style="magenta", width=12)
        timeline_table.add_column("Task", style="bold")
        timeline_table.add_column("Project", style="blue", width=15)
        timeline_table.add_column("User", style="green", width=15)

        for entry in day_entries:
            time_range = (
                f"{entry.start_time.strftime('%H:%M:%S')} → "
                f"{entry.end_time.strftime('%H:%M:%S')}"
            )
            timeline_table.add_row(
                time_range,
                format_duration(entry.duration),
                entry.task_title,
                entry.project or "-",
                entry.assignee or "-",
            )

        self.console.print(timeline_table)
        self.console.print(
            f"\n[dim]Total Time:[/dim] [bold]"
            f"{format_duration(self.engine.total_seconds(day_entries))}[/bold]"
        )

    def _print_breakdown(
        self,
        title: str,
        label: str,
        rows: list[tuple[str, int]],
        total: int,
        bars: bool = True,
    ) -> None:
        table = Table(title=title)
        table.add_column(label, style="cyan")
        table.add_column("Hours", style="magenta", justify="right")
        table.add_column("% Total", style="green", justify="right")
        if bars:
            table.add_column("Bar", style="blue")

        for key, seconds in rows:
            pct = (seconds / total) * 100 if total > 0 else 0
            name = key[:50] + "..." if len(key) > 50 else key
            cells = [name, f"{to_hours(seconds):.2f}", f"{pct:.1f}%"]
            if bars:
                table.add_row(*cells, self._create_bar(pct))
            else:
                table.add_row(*cells)

        self.console.print(table)
        self.console.print()

    def _create_bar(self, percentage: float, width: int = 25) -> Text:
        """Create a visual bar for percentage display."""
        filled = int((percentage / 100) * width)
        empty = width - filled

        bar = Text()
        bar.append("█" * filled, style="blue")
        bar.append("░" * empty, style="dim")

        return bar
