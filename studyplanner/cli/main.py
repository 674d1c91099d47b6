"""
Main CLI entry point for the study planner.

This module provides the command-line interface using typer. It plays the part
of the user interface and of the once-per-second tick driver for the timer.
"""

import json
import logging
import time
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn
from rich.prompt import Confirm
from rich.table import Table

from .. import __version__
from ..core.planner import PlannerError, PlannerStore
from ..core.pomodoro import PomodoroTimer
from ..core.scheduler import SlotSuggestionEngine
from ..core.stats_cache import StatsCache
from ..db.models import PhaseType, PomodoroSettings, StudyCategory, TimerStatus
from ..db.repository import PlannerRepository, PomodoroRepository
from ..db.schema import DatabaseManager
from ..events.event_manager import EventManager
from ..integrations.collaborators import CollaboratorBridge, InMemoryTaskProvider
from ..utils.config import get_config_manager
from ..utils.formatting import (
    format_date,
    format_datetime,
    format_minutes,
    format_percentage,
    format_timer,
    pluralize,
)
from ..utils.notifier import PHASE_LABELS, notify_phase_complete

logger = logging.getLogger(__name__)

# Create the main typer app
app = typer.Typer(
    name="studyplanner",
    help="Study Planner: schedule study sessions and track focus time",
    add_completion=False,
)
session_app = typer.Typer(help="Manage study sessions")
category_app = typer.Typer(help="Manage study categories")
goal_app = typer.Typer(help="Manage study goals")
settings_app = typer.Typer(help="Show and change timer settings")
config_app = typer.Typer(help="Show configuration")

app.add_typer(session_app, name="session")
app.add_typer(category_app, name="category")
app.add_typer(goal_app, name="goal")
app.add_typer(settings_app, name="settings")
app.add_typer(config_app, name="config")

# Initialize console for rich output
console = Console()

DATETIME_INPUT_FORMAT = "%Y-%m-%d %H:%M"

# Global instances shared by the commands of one invocation
events: Optional[EventManager] = None
planner: Optional[PlannerStore] = None
timer: Optional[PomodoroTimer] = None
task_provider: Optional[InMemoryTaskProvider] = None
bridge: Optional[CollaboratorBridge] = None
_db_manager: Optional[DatabaseManager] = None


def setup_logging(verbose: bool = False) -> None:
    """Set up logging from the configuration, or at DEBUG level when verbose."""
    config = get_config_manager()
    level = logging.DEBUG if verbose else getattr(logging, config.get_log_level(), logging.WARNING)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if config.is_file_logging_enabled():
        handlers.append(logging.FileHandler(config.get_data_dir() / "studyplanner.log"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def get_events() -> EventManager:
    """Get or initialize the global event manager and collaborator bridge."""
    global events, task_provider, bridge
    if events is None:
        events = EventManager()
        task_provider = InMemoryTaskProvider()
        bridge = CollaboratorBridge(
            events,
            task_provider=task_provider,
            achievement_id=get_config_manager().get_goal_achievement_id(),
        )
    return events


def get_db_manager() -> DatabaseManager:
    """Get or initialize the global database manager."""
    global _db_manager
    if _db_manager is None:
        config = get_config_manager()
        _db_manager = DatabaseManager(config.get_data_dir() / "studyplanner.db")
        _db_manager.initialize_database()
    return _db_manager


def get_planner() -> PlannerStore:
    """Get or initialize the global planner instance."""
    global planner
    if planner is None:
        event_manager = get_events()
        options = get_config_manager().get_planner_options()
        upcoming_limit = options.pop("upcoming_limit", 5)
        planner = PlannerStore(
            repository=PlannerRepository(get_db_manager()),
            events=event_manager,
            task_provider=task_provider,
            engine=SlotSuggestionEngine(**options),
            upcoming_limit=upcoming_limit,
        )
    return planner


def get_timer() -> PomodoroTimer:
    """Get or initialize the global Pomodoro timer."""
    global timer
    if timer is None:
        defaults = get_config_manager().get_pomodoro_defaults()
        timer = PomodoroTimer(
            settings=PomodoroSettings(**defaults),
            repository=PomodoroRepository(get_db_manager()),
            events=get_events(),
        )
    return timer


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.strptime(value, DATETIME_INPUT_FORMAT)
    except ValueError:
        raise typer.BadParameter(f"Expected 'YYYY-MM-DD HH:MM', got '{value}'")


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected 'YYYY-MM-DD', got '{value}'")


def _resolve_category(store: PlannerStore, value: str) -> StudyCategory:
    """Find a category by name (case-insensitive) or ID."""
    for category in store.get_categories():
        if category.name.lower() == value.lower():
            return category
    try:
        category = store.get_category(UUID(value))
    except ValueError:
        category = None
    if category is None:
        raise PlannerError(f"Category '{value}' not found")
    return category


def _category_name(store: PlannerStore, category_id: UUID) -> str:
    category = store.get_category(category_id)
    return category.name if category else "Unknown"


# Sessions


@session_app.command("add")
def session_add(
    title: str = typer.Argument(..., help="Session title"),
    start: str = typer.Option(..., "--start", "-s", help="Start time (YYYY-MM-DD HH:MM)"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="End time (YYYY-MM-DD HH:MM)"),
    duration: Optional[int] = typer.Option(
        None, "--duration", "-d", help="Duration in minutes (instead of --end)"
    ),
    category: str = typer.Option(..., "--category", "-c", help="Category name or ID"),
    priority: str = typer.Option("medium", "--priority", "-p", help="low, medium or high"),
    description: Optional[str] = typer.Option(None, "--description", help="Session description"),
    task: Optional[List[str]] = typer.Option(None, "--task", "-t", help="Associated task ID"),
    pomodoros: int = typer.Option(0, "--pomodoros", help="Planned pomodoros"),
    completed: bool = typer.Option(False, "--completed", help="Record an already finished session"),
) -> None:
    """Add a study session."""
    try:
        store = get_planner()
        start_time = _parse_datetime(start)
        if end:
            end_time = _parse_datetime(end)
        elif duration:
            end_time = start_time + timedelta(minutes=duration)
        else:
            console.print("[red]Either --end or --duration is required[/red]")
            raise typer.Exit(1)

        category_obj = _resolve_category(store, category)
        session_id = store.add_session(
            title=title,
            start_time=start_time,
            end_time=end_time,
            category_id=category_obj.id,
            priority=priority,
            description=description,
            is_completed=completed,
            associated_task_ids=task or [],
            pomodoro_count=pomodoros,
        )

        console.print(f"[green]✓[/green] Added session: [bold]{title}[/bold]")
        console.print(
            f"[dim]{format_datetime(start_time)} - {format_datetime(end_time, include_date=False)}"
            f" ({category_obj.name})[/dim]"
        )
        console.print(f"[dim]Session ID: {session_id}[/dim]")

    except typer.Exit:
        raise
    except typer.BadParameter:
        raise
    except Exception as e:
        console.print(f"[red]Error adding session: {e}[/red]")
        raise typer.Exit(1)


@session_app.command("list")
def session_list(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include completed sessions"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only this category"),
    priority: Optional[List[str]] = typer.Option(None, "--priority", "-p", help="Only these priorities"),
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYY-MM-DD)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYY-MM-DD)"),
) -> None:
    """List study sessions."""
    try:
        store = get_planner()
        filters = {"show_completed": show_all}
        if category:
            filters["categories"] = [_resolve_category(store, category).id]
        if priority:
            filters["priorities"] = priority
        if from_date:
            filters["start_date"] = _parse_date(from_date)
        if to_date:
            filters["end_date"] = _parse_date(to_date)
        store.update_filters(**filters)

        sessions = store.filter_sessions()
        if not sessions:
            console.print("[yellow]No sessions found[/yellow]")
            return

        table = Table(title="Study Sessions")
        table.add_column("ID", style="dim", max_width=8)
        table.add_column("Title", style="bold")
        table.add_column("When")
        table.add_column("Category", style="cyan")
        table.add_column("Priority")
        table.add_column("Pomodoros", justify="right")
        table.add_column("Status")

        for s in sessions:
            when = format_datetime(s.start_time) if s.start_time else "-"
            table.add_row(
                str(s.id)[:8],
                s.title,
                when,
                _category_name(store, s.category_id),
                s.priority.value,
                f"{s.completed_pomodoros}/{s.pomodoro_count}",
                "[green]Done[/green]" if s.is_completed else "Pending",
            )

        console.print(table)

    except typer.BadParameter:
        raise
    except Exception as e:
        console.print(f"[red]Error listing sessions: {e}[/red]")
        raise typer.Exit(1)
    finally:
        if planner is not None:
            planner.reset_filters()


def _find_session_id(store: PlannerStore, value: str) -> UUID:
    """Resolve a full session ID or a unique prefix of one."""
    matches = [s.id for s in store.get_all_sessions() if str(s.id).startswith(value)]
    if len(matches) != 1:
        raise PlannerError(
            f"Session '{value}' not found" if not matches else f"Session ID '{value}' is ambiguous"
        )
    return matches[0]


@session_app.command("complete")
def session_complete(session_id: str = typer.Argument(..., help="Session ID or prefix")) -> None:
    """Mark a study session as completed."""
    try:
        store = get_planner()
        session = store.complete_session(_find_session_id(store, session_id))
        console.print(f"[green]✓[/green] Completed: [bold]{session.title}[/bold]")
    except Exception as e:
        console.print(f"[red]Error completing session: {e}[/red]")
        raise typer.Exit(1)


@session_app.command("delete")
def session_delete(
    session_id: str = typer.Argument(..., help="Session ID or prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a study session."""
    try:
        store = get_planner()
        target = store.get_session(_find_session_id(store, session_id))
        if not yes and not Confirm.ask(f"Delete session '{target.title}'?"):
            console.print("[yellow]Cancelled[/yellow]")
            return
        store.delete_session(target.id)
        console.print(f"[green]✓[/green] Deleted: [bold]{target.title}[/bold]")
    except Exception as e:
        console.print(f"[red]Error deleting session: {e}[/red]")
        raise typer.Exit(1)


def _print_session_rows(title: str, sessions: list, store: PlannerStore) -> None:
    table = Table(title=title)
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Title", style="bold")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Category", style="cyan")
    for s in sessions:
        table.add_row(
            str(s.id)[:8],
            s.title,
            format_datetime(s.start_time),
            format_datetime(s.end_time, include_date=False) if s.end_time else "-",
            _category_name(store, s.category_id),
        )
    console.print(table)


@session_app.command("upcoming")
def session_upcoming(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum sessions to show"),
) -> None:
    """Show upcoming sessions."""
    try:
        store = get_planner()
        sessions = store.get_upcoming_sessions(limit)
        if not sessions:
            console.print("[yellow]No upcoming sessions[/yellow]")
            return
        _print_session_rows("Upcoming Sessions", sessions, store)
    except Exception as e:
        console.print(f"[red]Error getting upcoming sessions: {e}[/red]")
        raise typer.Exit(1)


@session_app.command("today")
def session_today() -> None:
    """Show today's sessions."""
    try:
        store = get_planner()
        sessions = store.get_sessions_for_today()
        if not sessions:
            console.print("[yellow]No sessions today[/yellow]")
            return
        _print_session_rows(f"Sessions for {format_date(datetime.now())}", sessions, store)
    except Exception as e:
        console.print(f"[red]Error getting today's sessions: {e}[/red]")
        raise typer.Exit(1)


# Categories


@category_app.command("add")
def category_add(
    name: str = typer.Argument(..., help="Category name"),
    color: str = typer.Option("#4F46E5", "--color", help="Hex color (#RRGGBB)"),
) -> None:
    """Add a study category."""
    try:
        category_id = get_planner().add_category(name, color)
        console.print(f"[green]✓[/green] Added category: [bold]{name}[/bold]")
        console.print(f"[dim]Category ID: {category_id}[/dim]")
    except Exception as e:
        console.print(f"[red]Error adding category: {e}[/red]")
        raise typer.Exit(1)


@category_app.command("list")
def category_list() -> None:
    """List study categories."""
    try:
        store = get_planner()
        table = Table(title="Study Categories")
        table.add_column("ID", style="dim", max_width=8)
        table.add_column("Name", style="bold")
        table.add_column("Color")
        table.add_column("Sessions", justify="right")

        sessions = store.get_all_sessions()
        for category in store.get_categories():
            count = sum(1 for s in sessions if s.category_id == category.id)
            table.add_row(
                str(category.id)[:8],
                category.name,
                f"[{category.color}]{category.color}[/{category.color}]",
                str(count),
            )
        console.print(table)
    except Exception as e:
        console.print(f"[red]Error listing categories: {e}[/red]")
        raise typer.Exit(1)


@category_app.command("delete")
def category_delete(name: str = typer.Argument(..., help="Category name or ID")) -> None:
    """Delete a category that no session uses."""
    try:
        store = get_planner()
        category = _resolve_category(store, name)
        if not store.delete_category(category.id):
            console.print(
                f"[red]Category '{category.name}' is still used by sessions and was not deleted[/red]"
            )
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Deleted category: [bold]{category.name}[/bold]")
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error deleting category: {e}[/red]")
        raise typer.Exit(1)


# Goals


@goal_app.command("add")
def goal_add(
    title: str = typer.Argument(..., help="Goal title"),
    category: str = typer.Option(..., "--category", "-c", help="Category name or ID"),
    hours: float = typer.Option(..., "--hours", help="Target study hours"),
    start: Optional[str] = typer.Option(None, "--start", help="Start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", help="End date (YYYY-MM-DD)"),
) -> None:
    """Add an hours-based study goal."""
    try:
        store = get_planner()
        category_obj = _resolve_category(store, category)
        goal_id = store.add_goal(
            title=title,
            category_id=category_obj.id,
            target_hours=hours,
            start_date=_parse_date(start) if start else None,
            end_date=_parse_date(end) if end else None,
        )
        console.print(
            f"[green]✓[/green] Added goal: [bold]{title}[/bold] ({hours}h of {category_obj.name})"
        )
        console.print(f"[dim]Goal ID: {goal_id}[/dim]")
    except typer.BadParameter:
        raise
    except Exception as e:
        console.print(f"[red]Error adding goal: {e}[/red]")
        raise typer.Exit(1)


@goal_app.command("list")
def goal_list() -> None:
    """List study goals and their progress."""
    try:
        store = get_planner()
        goals = store.get_goals()
        if not goals:
            console.print("[yellow]No goals yet[/yellow]")
            return

        table = Table(title="Study Goals")
        table.add_column("Title", style="bold")
        table.add_column("Category", style="cyan")
        table.add_column("Progress", justify="right")
        table.add_column("Due")
        table.add_column("Status")
        for goal in goals:
            table.add_row(
                goal.title,
                _category_name(store, goal.category_id),
                f"{goal.current_hours:.1f}/{goal.target_hours:g}h "
                f"({format_percentage(goal.progress_percent)})",
                goal.end_date.isoformat(),
                "[green]Completed[/green]" if goal.is_completed else "Open",
            )
        console.print(table)
    except Exception as e:
        console.print(f"[red]Error listing goals: {e}[/red]")
        raise typer.Exit(1)


# Suggestions and statistics


@app.command()
def suggest(
    duration: int = typer.Argument(60, help="Session length in minutes"),
    on: Optional[List[str]] = typer.Option(None, "--date", help="Candidate date (YYYY-MM-DD)"),
) -> None:
    """Suggest free study windows."""
    try:
        dates = [_parse_date(d) for d in on] if on else None
        slots = get_planner().suggest_study_times(duration, dates)
        if not slots:
            console.print("[yellow]No free windows found[/yellow]")
            return

        table = Table(title=f"Free {duration}-minute windows")
        table.add_column("Date")
        table.add_column("Start", style="green")
        table.add_column("End", style="green")
        for slot in slots:
            table.add_row(
                format_date(slot.start_time),
                format_datetime(slot.start_time, include_date=False),
                format_datetime(slot.end_time, include_date=False),
            )
        console.print(table)
    except typer.BadParameter:
        raise
    except Exception as e:
        console.print(f"[red]Error suggesting study times: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def stats(
    days: int = typer.Option(7, "--days", "-d", help="Number of days to summarize"),
) -> None:
    """Show study and focus statistics."""
    try:
        store = get_planner()
        cache = StatsCache(store, get_timer(), task_provider)
        unified = cache.get()

        now = datetime.now()
        range_start = datetime.combine(now.date() - timedelta(days=days - 1), datetime.min.time())

        summary = Table(title=f"Last {days} {pluralize(days, 'day')}", show_header=False)
        summary.add_column("Metric", style="bold")
        summary.add_column("Value")
        summary.add_row("Study hours", f"{store.get_total_study_hours(range_start, now):.1f}h")
        summary.add_row("Completion rate", format_percentage(store.get_completion_rate(range_start, now)))
        summary.add_row("Total hours (all time)", f"{unified.session_stats.total_hours}h")
        summary.add_row("This week", f"{unified.session_stats.this_week_hours}h")
        summary.add_row("Study streak", f"{unified.current_streak} {pluralize(unified.current_streak, 'day')}")
        summary.add_row("Pending sessions", str(unified.session_stats.pending_sessions))
        console.print(summary)

        breakdown = store.get_category_breakdown(range_start, now)
        if breakdown:
            table = Table(title="Hours by category")
            table.add_column("Category", style="cyan")
            table.add_column("Hours", justify="right")
            for item in breakdown:
                table.add_row(_category_name(store, item.category_id), f"{item.hours:.1f}")
            console.print(table)

        focus = unified.focus_insights
        insights = get_timer().insights().get_pomodoro_insights()
        focus_table = Table(title="Focus", show_header=False)
        focus_table.add_column("Metric", style="bold")
        focus_table.add_column("Value")
        focus_table.add_row("Focus today", format_minutes(focus.today_focus_time))
        focus_table.add_row("Focus total", format_minutes(focus.total_focus_time))
        focus_table.add_row("Focus streak", f"{focus.current_streak} {pluralize(focus.current_streak, 'day')}")
        focus_table.add_row("Longest focus streak", f"{focus.longest_streak} {pluralize(focus.longest_streak, 'day')}")
        focus_table.add_row("Most productive day", insights.most_productive_day)
        focus_table.add_row("Most productive time", insights.most_productive_time)
        focus_table.add_row("Focus score", f"{unified.focus_score:.0f}/100")
        console.print(focus_table)

    except Exception as e:
        console.print(f"[red]Error getting statistics: {e}[/red]")
        raise typer.Exit(1)


# Focus timer


def _run_phase(pomodoro: PomodoroTimer) -> None:
    """Tick the current phase once per second until it runs out."""
    phase = pomodoro.current_phase
    label = PHASE_LABELS[phase.phase_type]
    with Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TextColumn("{task.fields[clock]}"),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        bar = progress.add_task(label, total=phase.duration, clock=format_timer(phase.duration))
        while pomodoro.time_remaining > 0 and pomodoro.status == TimerStatus.RUNNING:
            time.sleep(1)
            pomodoro.update_time_remaining(pomodoro.time_remaining - 1)
            progress.update(
                bar,
                completed=phase.duration - pomodoro.time_remaining,
                clock=format_timer(pomodoro.time_remaining),
            )


@app.command()
def focus(
    phase: PhaseType = typer.Option(PhaseType.FOCUS, "--phase", help="Phase to start with"),
    session: Optional[str] = typer.Option(
        None, "--session", "-s", help="Study session to credit completed focus phases to"
    ),
) -> None:
    """Run the Pomodoro timer. Press Ctrl-C to stop."""
    pomodoro = get_timer()
    store = get_planner()
    try:
        session_id = None
        task_name = None
        if session:
            target = store.get_session(_find_session_id(store, session))
            session_id, task_name = target.id, target.title

        pomodoro.start_session(phase, task_id=str(session_id) if session_id else None, task_name=task_name)
        while pomodoro.status == TimerStatus.RUNNING:
            _run_phase(pomodoro)
            finished = pomodoro.complete_session()
            chained = pomodoro.current_phase.phase_type if pomodoro.current_phase else None

            console.print(f"[green]✓[/green] {PHASE_LABELS[finished.phase_type]} finished")
            if session_id and finished.phase_type == PhaseType.FOCUS:
                linked = store.link_session_to_pomodoro(session_id, finished.id)
                console.print(
                    f"[dim]{linked.title}: {linked.completed_pomodoros}/{linked.pomodoro_count} pomodoros[/dim]"
                )
            notify_phase_complete(finished.phase_type, chained)

        console.print(
            f"[dim]Focus today: {format_minutes(pomodoro.accountant.get_today_focus_time())}[/dim]"
        )

    except KeyboardInterrupt:
        pomodoro.stop_session()
        console.print("\n[yellow]Timer stopped[/yellow]")
    except Exception as e:
        console.print(f"[red]Error running timer: {e}[/red]")
        raise typer.Exit(1)


# Settings and configuration


@settings_app.command("show")
def settings_show() -> None:
    """Show the timer settings."""
    try:
        settings = get_timer().settings
        table = Table(title="Timer Settings")
        table.add_column("Setting", style="bold")
        table.add_column("Value")
        for key, value in settings.model_dump().items():
            table.add_row(key, str(value))
        console.print(table)
    except Exception as e:
        console.print(f"[red]Error showing settings: {e}[/red]")
        raise typer.Exit(1)


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(..., help="Setting name, e.g. focus_duration"),
    value: str = typer.Argument(..., help="New value (durations in seconds)"),
) -> None:
    """Change a timer setting."""
    try:
        if key not in PomodoroSettings.model_fields:
            console.print(f"[red]Unknown setting: {key}[/red]")
            raise typer.Exit(1)
        settings = get_timer().update_settings(**{key: value})
        console.print(f"[green]✓[/green] {key} = {getattr(settings, key)}")
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error updating settings: {e}[/red]")
        raise typer.Exit(1)


@config_app.command("show")
def config_show() -> None:
    """Show the configuration file contents."""
    config = get_config_manager()
    console.print(f"[dim]Config file: {config.config_file}[/dim]")
    console.print_json(json.dumps(config.as_dict()))


@app.command()
def version() -> None:
    """Show Study Planner version information."""
    console.print(f"Study Planner version {__version__}")


def version_callback(value: bool) -> None:
    """Version callback that prints version and exits."""
    if value:
        version()
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Study Planner: schedule study sessions and track focus time.

    Plans sessions around free time, tracks goals and streaks, and runs a
    Pomodoro timer that credits focus time second by second.
    """
    setup_logging(verbose)


if __name__ == "__main__":
    app()
