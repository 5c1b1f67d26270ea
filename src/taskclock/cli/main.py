"""Main CLI application."""

import json
import logging
import sys
from datetime import date, datetime
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from taskclock.analysis.aggregation import (
    AggregationEngine,
    Dimension,
    FilterSpec,
    to_hours,
)
from taskclock.analysis.periods import Period, resolve_period
from taskclock.analysis.reports import ReportGenerator, format_duration
from taskclock.cli.config_commands import config, load_config
from taskclock.core.config import ConfigManager
from taskclock.core.errors import RepositoryError, TaskClockError
from taskclock.core.models import EnrichedTimeEntry, TimeEntry, TimerState
from taskclock.core.repository import CsvEntryRepository, CsvTaskLookup, TaskLookup
from taskclock.core.state import TimerStateStore
from taskclock.core.timer import TimerController
from taskclock.core.tracker import TimeTracker
from taskclock.export_import.csv_format import (
    DEFAULT_EMPTY_MESSAGE,
    CSVExporter,
    default_filename,
)

console = Console()
error_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
EDIT_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S"]


def setup_logging(level: str) -> None:
    """Send log records at ``level`` and above to stderr."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    if not any(getattr(h, "_taskclock", False) for h in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._taskclock = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Report taskclock errors on stderr and exit with status 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except TaskClockError as e:
            error_console.print(f"[red]Error:[/red] {e}")
            if isinstance(e, RepositoryError) and e.entry is not None:
                error_console.print(
                    "[yellow]The entry was kept and will be saved on the next "
                    "'stop' or 'start'.[/yellow]"
                )
            sys.exit(1)

    return wrapper


def get_data_dir(ctx: click.Context) -> Path:
    data_dir = ctx.obj.get("data_dir")
    if data_dir:
        return Path(data_dir)
    return ctx.obj["config"].data_dir


def get_tracker(ctx: click.Context) -> TimeTracker:
    """TimeTracker over the CSV store, with the timer restored from disk."""
    data_dir = get_data_dir(ctx)
    repository = CsvEntryRepository(data_dir)
    timer = TimerController(repository, state_store=TimerStateStore(data_dir / "timer.json"))
    return TimeTracker(repository, timer)


def get_lookup(ctx: click.Context) -> TaskLookup:
    return CsvTaskLookup(get_data_dir(ctx) / "tasks.csv")


def task_label(lookup: TaskLookup, task_id: str) -> str:
    task = lookup.get(task_id)
    return f"{task.title} ({task_id})" if task else task_id


def format_datetime(dt: datetime, cfg: ConfigManager) -> str:
    """Format datetime for display using the configured date and time formats."""
    date_format = cfg.get("general.date_format", "%Y-%m-%d")
    time_format = cfg.get("general.time_format", "%H:%M:%S")
    return dt.strftime(f"{date_format} {time_format}")


def filter_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by commands that select entries for reporting."""
    options = [
        click.option(
            "--period",
            type=click.Choice([p.value for p in Period if p is not Period.CUSTOM]),
            help="Date range preset (default from config)",
        ),
        click.option(
            "--from",
            "from_date",
            type=click.DateTime(formats=["%Y-%m-%d"]),
            help="Start date (YYYY-MM-DD)",
        ),
        click.option(
            "--to",
            "to_date",
            type=click.DateTime(formats=["%Y-%m-%d"]),
            help="End date (YYYY-MM-DD), inclusive",
        ),
        click.option("-p", "--project", default="All Projects", help="Filter by project"),
        click.option("-u", "--user", default="All Users", help="Filter by assignee"),
        click.option("-t", "--tag", default="All Tags", help="Filter by task tag"),
        click.option("--priority", default="All Priorities", help="Filter by priority"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_filter(
    cfg: ConfigManager,
    period: Optional[str],
    from_date: Optional[datetime],
    to_date: Optional[datetime],
    project: str,
    user: str,
    tag: str,
    priority: str,
) -> tuple[FilterSpec, str, date, date]:
    """Resolve command-line filter options.

    Returns:
        Tuple of (filter spec, period label, first day, last day)
    """
    if from_date or to_date:
        first = (from_date or to_date).date()  # type: ignore[union-attr]
        last = (to_date or from_date).date()  # type: ignore[union-attr]
        start, end = resolve_period(Period.CUSTOM, start_date=first, end_date=last)
        label = f"{start} to {end}"
    else:
        preset = Period(period or cfg.get("reports.default_period", "this_week"))
        start, end = resolve_period(preset, week_start=cfg.get("general.week_start", "monday"))
        label = preset.label

    spec = FilterSpec(
        start_date=start,
        end_date=end,
        project=project,
        assignee=user,
        tag=tag,
        priority=priority,
    )
    return spec, label, start, end


@click.group()
@click.version_option(version="0.1.0")
@click.option("--data-dir", help="Custom data directory", type=click.Path())
@click.option(
    "--config",
    "config_path",
    envvar="TASKCLOCK_CONFIG",
    help="Config file path",
    type=click.Path(),
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default from config)",
)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(
    ctx: click.Context,
    data_dir: Optional[str],
    config_path: Optional[str],
    log_level: Optional[str],
    no_color: bool,
) -> None:
    """taskclock - Task timer and time reports.

    Time work against tasks, log time manually, and summarize or export it.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand == "config":
        return

    cfg = load_config(ctx)
    ctx.obj["config"] = cfg
    setup_logging(log_level or cfg.get("advanced.log_level", "WARNING"))

    if no_color:
        console.no_color = True


cli.add_command(config)


@cli.command()
@click.argument("task_id")
@click.pass_context
@handle_errors
def start(ctx: click.Context, task_id: str) -> None:
    """Start the timer on a task.

    A timer already running is stopped and saved first.

    Example:
        taskclock start 42
    """
    tracker = get_tracker(ctx)
    lookup = get_lookup(ctx)

    previous = tracker.start(task_id)
    if previous:
        console.print(
            f"[yellow]⏹[/yellow]  Stopped: {task_label(lookup, previous.task_id)} "
            f"({format_duration(previous.duration)})"
        )
    console.print(f"[green]▶[/green]  Started timer: {task_label(lookup, task_id)}")


@cli.command()
@click.pass_context
@handle_errors
def pause(ctx: click.Context) -> None:
    """Pause the running timer."""
    tracker = get_tracker(ctx)
    if tracker.pause():
        elapsed = format_duration(tracker.timer.elapsed_seconds())
        console.print(f"[yellow]⏸[/yellow]  Paused at {elapsed}")
    else:
        console.print("[yellow]No running timer to pause[/yellow]")


@cli.command()
@click.pass_context
@handle_errors
def resume(ctx: click.Context) -> None:
    """Resume the paused timer."""
    tracker = get_tracker(ctx)
    if tracker.resume():
        console.print("[green]▶[/green]  Resumed")
    else:
        console.print("[yellow]No paused timer to resume[/yellow]")


@cli.command()
@click.pass_context
@handle_errors
def stop(ctx: click.Context) -> None:
    """Stop the timer and save the time entry.

    Also retries saving an entry whose earlier save failed.
    """
    tracker = get_tracker(ctx)
    lookup = get_lookup(ctx)

    entry = tracker.stop() or tracker.timer.save_pending()
    if entry is None:
        console.print("[yellow]No timer is running[/yellow]")
        return

    console.print(f"[green]✓[/green] Stopped: {task_label(lookup, entry.task_id)}")
    console.print(f"  Duration: {format_duration(entry.duration)}")
    console.print(f"  Entry ID: {entry.id}")


@cli.command()
@click.pass_context
@handle_errors
def status(ctx: click.Context) -> None:
    """Show the active timer."""
    tracker = get_tracker(ctx)
    timer = tracker.timer.active_timer

    if timer is None:
        console.print("[yellow]No timer is running[/yellow]")
        if tracker.timer.pending_entry is not None:
            console.print(
                "[yellow]One stopped entry is waiting to be saved; run 'taskclock stop'.[/yellow]"
            )
        return

    state = "Paused" if tracker.timer.state is TimerState.PAUSED else "Running"
    content = f"""[bold]{task_label(get_lookup(ctx), timer.task_id)}[/bold]

[dim]State:[/dim] {state}
[dim]Started:[/dim] {format_datetime(timer.start_time, ctx.obj["config"])}
[dim]Elapsed:[/dim] {format_duration(tracker.timer.elapsed_seconds())}"""

    console.print(Panel(content, title="Active Timer", border_style="green"))


@cli.command()
@click.argument("task_id")
@click.option("-H", "--hours", type=int, default=0, help="Hours worked")
@click.option("-m", "--minutes", type=int, default=0, help="Minutes worked (0-59)")
@click.option("-d", "--description", default="", help="What was done")
@click.pass_context
@handle_errors
def add(ctx: click.Context, task_id: str, hours: int, minutes: int, description: str) -> None:
    """Log time on a task without the timer.

    The entry is recorded as ending now.

    Example:
        taskclock add 42 --hours 1 --minutes 30 -d "Code review"
    """
    tracker = get_tracker(ctx)
    entry = tracker.add_manual_entry(task_id, hours, minutes, description)

    label = task_label(get_lookup(ctx), task_id)
    console.print(f"[green]✓[/green] Logged {format_duration(entry.duration)} on {label}")
    console.print(f"  Entry ID: {entry.id}")


@cli.command()
@click.argument("entry_id")
@click.option("--task", "task_id", help="Move the entry to another task")
@click.option("-d", "--description", help="New description")
@click.option(
    "--start", "start_time", type=click.DateTime(formats=EDIT_FORMATS), help="New start time"
)
@click.option("--end", "end_time", type=click.DateTime(formats=EDIT_FORMATS), help="New end time")
@click.pass_context
@handle_errors
def edit(
    ctx: click.Context,
    entry_id: str,
    task_id: Optional[str],
    description: Optional[str],
    start_time: Optional[datetime],
    end_time: Optional[datetime],
) -> None:
    """Edit a time entry.

    ENTRY_ID is the full id or the short id shown by 'taskclock log'.

    Example:
        taskclock edit 3f2a9c1e -d "Pairing session"
    """
    tracker = get_tracker(ctx)
    entry = tracker.update_entry(
        entry_id,
        task_id=task_id,
        start_time=start_time,
        end_time=end_time,
        description=description,
    )
    console.print(
        f"[green]✓[/green] Updated entry {entry.id} ({format_duration(entry.duration)})"
    )


@cli.command()
@click.argument("entry_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
@handle_errors
def delete(ctx: click.Context, entry_id: str, yes: bool) -> None:
    """Permanently delete a time entry.

    ENTRY_ID is the full id or the short id shown by 'taskclock log'.
    """
    if not yes and not click.confirm(f"Delete entry {entry_id}?"):
        console.print("Cancelled")
        return

    tracker = get_tracker(ctx)
    if tracker.delete_entry(entry_id):
        console.print(f"[green]✓[/green] Deleted entry {entry_id}")
    else:
        error_console.print(f"[red]Error:[/red] Entry not found: {entry_id}")
        sys.exit(1)


@cli.command()
@click.option("-n", "--count", default=10, help="Number of entries to show")
@click.option("--task", "task_id", help="Only entries of this task")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_errors
def log(ctx: click.Context, count: int, task_id: Optional[str], as_json: bool) -> None:
    """List recent time entries.

    Example:
        taskclock log -n 20
        taskclock log --task 42
    """
    tracker = get_tracker(ctx)
    entries = tracker.get_entries(task_id=task_id, limit=count)

    if as_json:
        click.echo(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return

    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    lookup = get_lookup(ctx)
    table = Table(title=f"Time Entries (showing {len(entries)})")
    table.add_column("Start", style="cyan", no_wrap=True)
    table.add_column("Duration", style="magenta")
    table.add_column("Task", style="bold")
    table.add_column("Description")
    table.add_column("ID", style="dim", no_wrap=True)

    for entry in entries:
        table.add_row(
            format_datetime(entry.start_time, ctx.obj["config"]),
            format_duration(entry.duration),
            task_label(lookup, entry.task_id),
            entry.description or "-",
            str(entry.id)[:8],
        )

    console.print(table)


def _selected_entries(ctx: click.Context, spec: FilterSpec) -> list[EnrichedTimeEntry]:
    engine = AggregationEngine()
    tracker = get_tracker(ctx)
    entries: list[TimeEntry] = tracker.get_entries()
    return engine.filter(engine.enrich(entries, get_lookup(ctx)), spec)


@cli.command()
@click.argument("type", type=click.Choice(["summary", "timeline", "group"]), default="summary")
@click.option(
    "--by",
    "dimension",
    type=click.Choice([d.value for d in Dimension] + ["user"]),
    default="project",
    help="Dimension for the group report",
)
@click.option("--json", "as_json", is_flag=True, help="Output group totals (seconds) as JSON")
@filter_options
@click.pass_context
@handle_errors
def report(
    ctx: click.Context,
    type: str,
    dimension: str,
    as_json: bool,
    period: Optional[str],
    from_date: Optional[datetime],
    to_date: Optional[datetime],
    project: str,
    user: str,
    tag: str,
    priority: str,
) -> None:
    """Summarize tracked time.

    Types:
        summary  - Totals, breakdowns and top tasks
        timeline - Entries of the first day of the range
        group    - Totals for one dimension (--by)

    Examples:
        taskclock report summary --period this_week
        taskclock report group --by user --from 2024-01-01 --to 2024-01-31
        taskclock report timeline --period today
    """
    cfg: ConfigManager = ctx.obj["config"]
    spec, label, start_day, end_day = build_filter(
        cfg, period, from_date, to_date, project, user, tag, priority
    )
    entries = _selected_entries(ctx, spec)
    report_gen = ReportGenerator(console)

    if type == "summary":
        report_gen.summary_report(
            entries, label, start_day, end_day, top_n=cfg.get("reports.top_n", 10)
        )
    elif type == "timeline":
        report_gen.timeline_report(entries, start_day)
    else:
        totals = report_gen.engine.group_by(entries, dimension)
        if as_json:
            click.echo(json.dumps(totals, indent=2, sort_keys=True))
            return
        table = Table(title=f"Time by {Dimension.parse(dimension).value.title()} - {label}")
        table.add_column("Key", style="cyan")
        table.add_column("Hours", style="magenta", justify="right")
        for key, seconds in sorted(totals.items(), key=lambda item: item[1], reverse=True):
            table.add_row(key, f"{to_hours(seconds):.2f}")
        console.print(table)


@cli.command()
@click.argument("output", required=False)
@filter_options
@click.pass_context
@handle_errors
def export(
    ctx: click.Context,
    output: Optional[str],
    period: Optional[str],
    from_date: Optional[datetime],
    to_date: Optional[datetime],
    project: str,
    user: str,
    tag: str,
    priority: str,
) -> None:
    """Export entries to CSV.

    OUTPUT defaults to time-report-<start>-to-<end>.csv; use '-' for stdout.

    Examples:
        taskclock export --period last_month
        taskclock export - --from 2024-01-01 --to 2024-01-07 -p Website
    """
    cfg: ConfigManager = ctx.obj["config"]
    spec, _, start_day, end_day = build_filter(
        cfg, period, from_date, to_date, project, user, tag, priority
    )
    entries = _selected_entries(ctx, spec)
    exporter = CSVExporter(
        delimiter=cfg.get("export.delimiter", ","),
        empty_message=cfg.get("export.empty_message", DEFAULT_EMPTY_MESSAGE),
    )

    if output == "-":
        click.echo(exporter.to_csv(entries), nl=False)
        return

    exporter.output_path = Path(output or default_filename(start_day, end_day))
    try:
        path = exporter.export_entries(entries)
    except OSError as e:
        raise RepositoryError(f"Cannot write {exporter.output_path}: {e}") from e
    console.print(f"[green]✓[/green] Exported {len(entries)} entries to {path}")


if __name__ == "__main__":
    cli(obj={})
