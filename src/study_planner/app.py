"""Interactive CLI application."""
import asyncio
import logging
from datetime import date, timedelta
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from study_planner.config import PlannerConfig, load_config
from study_planner.constants import DEFAULT_PLAN_LENGTH_DAYS, EXCEPTION_KINDS, STATUS_COMPLETED
from study_planner.db import init_db
from study_planner.errors import PlannerError
from study_planner.models import DailySchedule, StandardRebalance
from study_planner.pool import classify_resources, first_date_for_resource, unscheduled_warnings
from study_planner.report import build_report, format_duration, get_progress_color
from study_planner.seed import is_seeded, seed_all
from study_planner.session import PlanSession
from study_planner.solver import HttpSolver
from study_planner.sync import ERROR

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """User typed q/menu in the middle of a multi-step command."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer is not None and answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None, default: int | None = None) -> int:
    while True:
        kwargs = {"default": str(default)} if default is not None else {}
        answer = session_prompt(prompt, **kwargs).strip()
        if choices and answer not in choices:
            console.print(f"[red]Pick one of: {', '.join(choices)}[/red]")
            continue
        try:
            return int(answer)
        except ValueError:
            console.print("[red]Please enter a number.[/red]")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome(session: PlanSession):
    plan = session.plan
    console.print(Panel(
        f"[bold]Study Planner[/bold]\n[dim]{plan.start_date} to {plan.end_date}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("today", "Today's tasks"),
        ("plan", "View the whole schedule"),
        ("toggle", "Mark a task done / not done"),
        ("add", "Add an optional task"),
        ("log", "Log study time on a task"),
        ("reset", "Mark every task pending"),
        ("exception", "Add a free day or moonlighting day"),
        ("rebalance", "Regenerate the schedule"),
        ("undo", "Revert the last change"),
        ("pool", "Manage the resource pool"),
        ("report", "Progress report"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _ask_date(label: str, default: str | None = None) -> str:
    return session_prompt(label, default=default or date.today().isoformat()).strip()


def render_day(day: DailySchedule) -> None:
    title = f"{day.date}" + (" [dim](rest day)[/dim]" if day.is_rest_day else "")
    if day.is_manually_modified:
        title += " [yellow]*edited[/yellow]"
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Task")
    table.add_column("Topic", style="cyan")
    table.add_column("Time", justify="right")
    table.add_column("Logged", justify="right")
    table.add_column("Status")
    for i, task in enumerate(day.tasks, 1):
        done = task.status == STATUS_COMPLETED
        table.add_row(
            str(i),
            task.title + (" [dim](optional)[/dim]" if task.is_optional else ""),
            task.original_topic,
            format_duration(task.duration_minutes),
            format_duration(task.actual_study_time_minutes) if task.actual_study_time_minutes else "",
            "[green]Done[/green]" if done else "",
        )
    console.print(table)
    console.print(f"  Planned: [bold]{format_duration(day.total_study_time_minutes)}[/bold]")


def _pick_task(session: PlanSession, day_str: str):
    day = session.plan.day(day_str)
    if day is None or not day.tasks:
        console.print(f"[yellow]No tasks on {day_str}.[/yellow]")
        return None
    render_day(day)
    choices = [str(i) for i in range(1, len(day.tasks) + 1)]
    index = session_int_prompt("Task number", choices=choices)
    return day.tasks[index - 1]


def _after_change(session: PlanSession) -> None:
    """Run any queued rebalance, then persist."""
    if session.pending_rebalance is not None and session.orchestrator.solver is not None:
        with console.status("Regenerating schedule..."):
            applied = asyncio.run(session.run_pending_rebalance())
        if applied is False and session.orchestrator.last_error:
            console.print(f"[red]Rebalance failed: {session.orchestrator.last_error}[/red]")
    session.save()
    if session.sync.status == ERROR:
        console.print(f"[red]Could not save: {session.sync.last_error}[/red]")


def cmd_today(session: PlanSession):
    today = date.today().isoformat()
    day = session.plan.day(today)
    if day is None:
        console.print(f"[yellow]{today} is outside the plan ({session.plan.start_date} to "
                      f"{session.plan.end_date}).[/yellow]")
        return
    render_day(day)


def cmd_plan(session: PlanSession):
    table = Table(title=f"Study Plan {session.plan.start_date} to {session.plan.end_date}")
    table.add_column("Date")
    table.add_column("Tasks", justify="right")
    table.add_column("Done", justify="right")
    table.add_column("Planned", justify="right")
    table.add_column("Topics")
    today = date.today().isoformat()
    for day in session.plan.schedule:
        marker = " ←" if day.date == today else ""
        done = sum(1 for t in day.tasks if t.status == STATUS_COMPLETED)
        topics = ", ".join(dict.fromkeys(t.original_topic for t in day.tasks))
        table.add_row(
            day.date + marker,
            str(len(day.tasks)),
            f"[green]{done}[/green]" if day.tasks and done == len(day.tasks) else str(done),
            "[dim]rest[/dim]" if day.is_rest_day else format_duration(day.total_study_time_minutes),
            topics,
        )
    console.print(table)


def cmd_toggle(session: PlanSession):
    day_str = _ask_date("Date")
    task = _pick_task(session, day_str)
    if task is None:
        return
    if session.toggle_task(day_str, task.id):
        console.print("[green]Updated.[/green]")
        _after_change(session)


def cmd_add(session: PlanSession):
    day_str = _ask_date("Date")
    title = session_prompt("Title")
    minutes = session_int_prompt("Minutes", default=30)
    topic = session_prompt("Topic", choices=session.plan.topic_order)
    task_type = session_prompt("Type", default="Practice Topic")
    if session.add_optional_task(day_str, title, minutes, topic, task_type):
        console.print(f"[green]Added '{title}' to {day_str}.[/green]")
        _after_change(session)
    else:
        console.print(f"[yellow]{day_str} is not on the schedule.[/yellow]")


def cmd_log(session: PlanSession):
    day_str = _ask_date("Date")
    task = _pick_task(session, day_str)
    if task is None:
        return
    minutes = session_int_prompt("Minutes studied", default=25)
    if session.log_study_time(task.id, minutes):
        console.print(f"[green]Logged {format_duration(minutes)} on {task.title}.[/green]")
        _after_change(session)


def cmd_reset(session: PlanSession):
    confirm = session_prompt("Mark every task pending?", choices=["y", "n"], default="n")
    if confirm == "y" and session.master_reset():
        console.print("[green]All tasks reset.[/green]")
        _after_change(session)


def cmd_exception(session: PlanSession):
    day_str = _ask_date("Date")
    kind = session_prompt("Kind", choices=list(EXCEPTION_KINDS))
    if session.add_exception_kind(kind, day_str):
        console.print(f"[green]{kind} set for {day_str}.[/green]")
        _after_change(session)


def cmd_rebalance(session: PlanSession):
    if session.orchestrator.solver is None:
        console.print("[red]No solver configured.[/red]")
        return
    if session.pending_rebalance is None:
        session.schedule_rebalance(StandardRebalance())
    _after_change(session)
    if session.notifications:
        for note in session.notifications:
            console.print(f"  [yellow]{note.get('message', note)}[/yellow]")


def cmd_undo(session: PlanSession):
    if session.undo():
        console.print("[green]Reverted the last change.[/green]")
        session.save()
    else:
        console.print("[yellow]Nothing to undo.[/yellow]")


def _show_pool(session: PlanSession):
    groups = classify_resources(session.resources, session.plan.schedule)
    table = Table(title="Resource Pool")
    table.add_column("Id", style="dim")
    table.add_column("Title")
    table.add_column("Topic", style="cyan")
    table.add_column("Time", justify="right")
    table.add_column("Status")
    for status, color in (("scheduled", "green"), ("unscheduled", "yellow"), ("archived", "dim")):
        for r in groups[status]:
            table.add_row(r.id, r.title, r.domain, format_duration(r.duration_minutes),
                          f"[{color}]{status}[/{color}]")
    console.print(table)
    for warning in unscheduled_warnings(session.resources, session.plan.schedule):
        console.print(f"  [yellow]{warning}[/yellow]")


def cmd_pool(session: PlanSession):
    _show_pool(session)
    action = session_prompt("Action", choices=["done", "archive", "restore", "delete", "find", "import"],
                            default="done")
    if action == "done":
        return
    if action == "import":
        file_path = session_prompt("File path")
        if not Path(file_path).exists():
            console.print(f"[red]File not found: {file_path}[/red]")
            return
        result = session.import_resources(file_path)
        console.print(f"[green]Imported {result['filename']}: {result['added']} added, "
                      f"{result['updated']} updated[/green]")
        _after_change(session)
        return

    resource_id = session_prompt("Resource id")
    if action == "find":
        first = first_date_for_resource(session.plan, resource_id)
        console.print(f"First scheduled on [bold]{first}[/bold]" if first else "[yellow]Not scheduled.[/yellow]")
        return
    changed = {
        "archive": session.archive_resource,
        "restore": session.restore_resource,
        "delete": session.delete_resource,
    }[action](resource_id)
    if changed:
        console.print(f"[green]{action.title()}d {resource_id}.[/green]")
        _after_change(session)
    else:
        console.print(f"[yellow]Nothing to {action} for {resource_id}.[/yellow]")


def cmd_report(session: PlanSession):
    report = build_report(session.plan, session.resources)
    progress = report.progress
    pct = progress["percent"]
    color = get_progress_color(pct)
    bar_filled = int(pct / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(Panel(
        f"[bold]{report.start_date} to {report.end_date}[/bold]\n"
        f"Planned {format_duration(report.scheduled_minutes)} over {len(report.days)} days "
        f"({report.rest_days} rest)",
        title="Progress Report", border_style="blue",
    ))
    console.print(f"\n  Overall: [bold]{pct}%[/bold] {bar}\n")

    table = Table(title="By Topic")
    table.add_column("Topic", style="cyan")
    table.add_column("Done", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Progress", justify="right")
    for topic in session.plan.topic_order:
        entry = progress["by_topic"].get(topic)
        if entry is None:
            continue
        c = get_progress_color(entry["percent"])
        table.add_row(topic, format_duration(entry["completed"]), format_duration(entry["total"]),
                      f"[{c}]{entry['percent']}%[/{c}]")
    console.print(table)


COMMANDS = {
    "today": cmd_today,
    "plan": cmd_plan,
    "toggle": cmd_toggle,
    "add": cmd_add,
    "log": cmd_log,
    "reset": cmd_reset,
    "exception": cmd_exception,
    "rebalance": cmd_rebalance,
    "undo": cmd_undo,
    "pool": cmd_pool,
    "report": cmd_report,
}


def open_session(config: PlannerConfig) -> PlanSession:
    init_db(config.db_path)
    logger.debug("Using database %s for user %s", config.db_path, config.user_id)
    if not is_seeded(config.db_path, config.user_id):
        console.print("[dim]Setting up for first use...[/dim]")
        start = date.today()
        end = start + timedelta(days=DEFAULT_PLAN_LENGTH_DAYS - 1)
        seed_all(config.db_path, config.user_id, start.isoformat(), end.isoformat(), config)
        console.print("[green]Ready![/green]\n")
    solver = HttpSolver(
        config.solver_url,
        timeout=config.solver_timeout_seconds,
        poll_interval=config.poll_interval_seconds,
        max_attempts=config.max_poll_attempts,
    )
    return PlanSession.load(solver=solver, config=config)


def main():
    config = load_config()
    setup_logging(config.log_level)
    session = open_session(config)
    show_welcome(session)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Good luck on your exam![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(session)
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except PlannerError as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
