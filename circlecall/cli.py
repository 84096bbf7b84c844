"""CLI entry point for CircleCall."""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Coroutine, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from circlecall import __version__
from circlecall.calls import (
    Call,
    CallMode,
    CallScope,
    CallSession,
    CreateCallRequest,
    create_call_session,
)
from circlecall.config import get_settings, load_settings
from circlecall.discipline import (
    DisciplineEngine,
    DisciplineEvaluator,
    GovernanceLog,
    GovernanceScope,
    TaskType,
)
from circlecall.discipline.models import RESULT_ACTIONS
from circlecall.errors import CircleCallError
from circlecall.models import get_discipline_client
from circlecall.storage import (
    DatabaseManager,
    SQLiteCallStore,
    SQLiteParticipantStore,
    SQLiteTaskSource,
)
from circlecall.utils.logging import setup_logging

T = TypeVar("T")

app = typer.Typer(
    name="circlecall",
    help="CircleCall - moderated circle-talking calls and room discipline",
    add_completion=True,
    no_args_is_help=True,
)
call_app = typer.Typer(help="Manage calls and circle talking", no_args_is_help=True)
room_app = typer.Typer(help="Manage rooms", no_args_is_help=True)
task_app = typer.Typer(help="Manage room tasks", no_args_is_help=True)
discipline_app = typer.Typer(help="Evaluate participant discipline", no_args_is_help=True)
governance_app = typer.Typer(help="Inspect automated moderation actions", no_args_is_help=True)

app.add_typer(call_app, name="call")
app.add_typer(room_app, name="room")
app.add_typer(task_app, name="task")
app.add_typer(discipline_app, name="discipline")
app.add_typer(governance_app, name="governance")

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]CircleCall[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """CircleCall - moderated circle-talking calls and room discipline."""
    setup_logging(verbose=verbose)

    if config:
        load_settings(config_path=config, force_reload=True)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine, turning domain errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except CircleCallError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)


async def _open_db() -> DatabaseManager:
    settings = get_settings()
    db = DatabaseManager(settings.storage.resolved_database_path)
    await db.initialize()
    return db


async def _open_session() -> CallSession:
    db = await _open_db()
    return create_call_session(
        SQLiteCallStore(db),
        SQLiteParticipantStore(db),
        get_settings(),
    )


async def _print_call(session: CallSession, call: Call) -> None:
    """Render a call and its participants."""
    lines = [
        f"[bold]ID:[/bold] {call.id}",
        f"[bold]Scope:[/bold] {call.scope.value} {call.ref_id}",
        f"[bold]Mode:[/bold] {call.mode.value}",
        f"[bold]State:[/bold] {call.state.value}",
        f"[bold]Started by:[/bold] {call.started_by}",
    ]
    if call.current_speaker_id:
        lines.append(f"[bold]Speaker:[/bold] {call.current_speaker_id}")
    if call.moderator_message:
        lines.append(f"[bold]Moderator:[/bold] [italic]{call.moderator_message}[/italic]")

    console.print(Panel("\n".join(lines), title="Call", border_style="blue"))

    participants = await session.get_participants(call.id)
    if not participants:
        console.print("[dim]No participants.[/dim]")
        return

    table = Table(title="Participants")
    table.add_column("Order", justify="right")
    table.add_column("User", style="cyan")
    table.add_column("Mic", justify="center")
    table.add_column("Hand", justify="center")
    table.add_column("Spoken (s)", justify="right")

    for participant in participants:
        table.add_row(
            "-" if participant.speaking_order is None else str(participant.speaking_order),
            participant.user_id,
            "[green]on[/green]" if participant.is_speaking else "[dim]muted[/dim]",
            "✋" if participant.hand_raised else "",
            f"{participant.speaking_time_seconds:.0f}" if participant.speaking_time_seconds else "-",
        )

    console.print(table)


# Calls


@call_app.command("create")
def call_create(
    ref_id: str = typer.Argument(..., help="Room or event ID"),
    started_by: str = typer.Option(..., "--by", "-b", help="User starting the call"),
    scope: CallScope = typer.Option(CallScope.ROOM, "--scope", "-s", help="room or event"),
    mode: CallMode = typer.Option(CallMode.AUDIO, "--mode", "-m", help="audio or video"),
) -> None:
    """Start a new call."""
    _run(_call_create(ref_id, started_by, scope, mode))


async def _call_create(ref_id: str, started_by: str, scope: CallScope, mode: CallMode) -> None:
    session = await _open_session()
    call = await session.create_call(
        CreateCallRequest(scope=scope, ref_id=ref_id, mode=mode, started_by=started_by)
    )
    console.print(f"[green]Call created:[/green] {call.id}")


@call_app.command("join")
def call_join(
    call_id: str = typer.Argument(..., help="Call ID"),
    user_id: str = typer.Argument(..., help="User joining"),
) -> None:
    """Join a call (muted, hand down)."""
    _run(_call_join(call_id, user_id))


async def _call_join(call_id: str, user_id: str) -> None:
    session = await _open_session()
    await session.join(call_id, user_id)
    console.print(f"[green]{user_id} joined {call_id}[/green]")


@call_app.command("leave")
def call_leave(
    call_id: str = typer.Argument(..., help="Call ID"),
    user_id: str = typer.Argument(..., help="User leaving"),
) -> None:
    """Leave a call."""
    _run(_call_leave(call_id, user_id))


async def _call_leave(call_id: str, user_id: str) -> None:
    session = await _open_session()
    if await session.leave(call_id, user_id):
        console.print(f"[green]{user_id} left {call_id}[/green]")
    else:
        console.print(f"[dim]{user_id} was not in {call_id}[/dim]")


@call_app.command("raise-hand")
def call_raise_hand(
    call_id: str = typer.Argument(..., help="Call ID"),
    user_id: str = typer.Argument(..., help="User raising their hand"),
) -> None:
    """Raise a participant's hand."""
    _run(_call_raise_hand(call_id, user_id))


async def _call_raise_hand(call_id: str, user_id: str) -> None:
    session = await _open_session()
    await session.raise_hand(call_id, user_id)
    console.print(f"[green]{user_id} raised their hand[/green]")


@call_app.command("start-circle")
def call_start_circle(
    call_id: str = typer.Argument(..., help="Call ID"),
    requester: str = typer.Option(..., "--by", "-b", help="Admin starting the circle"),
) -> None:
    """Start circle talking and give the floor to the first speaker."""
    _run(_call_start_circle(call_id, requester))


async def _call_start_circle(call_id: str, requester: str) -> None:
    session = await _open_session()
    call = await session.start_circle_talking(call_id, requester)
    await _print_call(session, call)


@call_app.command("next")
def call_next(
    call_id: str = typer.Argument(..., help="Call ID"),
    requester: str = typer.Option(..., "--by", "-b", help="Admin advancing the circle"),
) -> None:
    """Pass the floor to the next speaker."""
    _run(_call_next(call_id, requester))


async def _call_next(call_id: str, requester: str) -> None:
    session = await _open_session()
    call = await session.advance_speaker(call_id, requester)
    await _print_call(session, call)


@call_app.command("end")
def call_end(
    call_id: str = typer.Argument(..., help="Call ID"),
    requester: str = typer.Option(..., "--by", "-b", help="Admin ending the call"),
) -> None:
    """End a call."""
    _run(_call_end(call_id, requester))


async def _call_end(call_id: str, requester: str) -> None:
    session = await _open_session()
    await session.end_call(call_id, requester)
    console.print(f"[green]Call {call_id} ended[/green]")


@call_app.command("show")
def call_show(
    call_id: str = typer.Argument(..., help="Call ID"),
) -> None:
    """Show a call and its participants."""
    _run(_call_show(call_id))


async def _call_show(call_id: str) -> None:
    session = await _open_session()
    call = await session.get_call(call_id)
    await _print_call(session, call)


# Rooms and tasks


@room_app.command("add")
def room_add(
    title: str = typer.Argument(..., help="Room title"),
    room_id: Optional[str] = typer.Option(None, "--id", help="Room ID (generated if omitted)"),
) -> None:
    """Create a room."""
    _run(_room_add(title, room_id))


async def _room_add(title: str, room_id: Optional[str]) -> None:
    db = await _open_db()
    room = await db.create_room(room_id or uuid.uuid4().hex, title)
    console.print(f"[green]Room created:[/green] {room['id']}")


@task_app.command("add")
def task_add(
    room_id: str = typer.Argument(..., help="Room ID"),
    title: str = typer.Argument(..., help="Task title"),
    task_type: TaskType = typer.Option(TaskType.ACTION, "--type", "-t", help="Task type"),
    day: int = typer.Option(0, "--day", "-d", min=0, help="Day index within the room"),
    mandatory: bool = typer.Option(False, "--mandatory", "-m", help="Count towards discipline"),
) -> None:
    """Add a task to a room."""
    _run(_task_add(room_id, title, task_type, day, mandatory))


async def _task_add(
    room_id: str, title: str, task_type: TaskType, day: int, mandatory: bool
) -> None:
    db = await _open_db()
    task = await db.create_task(
        uuid.uuid4().hex,
        room_id,
        title,
        task_type,
        day_index=day,
        mandatory=mandatory,
    )
    console.print(f"[green]Task created:[/green] {task['id']}")


@task_app.command("complete")
def task_complete(
    task_id: str = typer.Argument(..., help="Task ID"),
    user_id: str = typer.Argument(..., help="User completing the task"),
) -> None:
    """Mark a task completed by a user."""
    _run(_task_complete(task_id, user_id))


async def _task_complete(task_id: str, user_id: str) -> None:
    db = await _open_db()
    task = await db.get_task(task_id)
    if task is None:
        console.print(f"[red]Task not found: {task_id}[/red]")
        raise typer.Exit(1)
    await db.set_task_progress(task_id, user_id, task["room_id"], completed=True)
    console.print(f"[green]{user_id} completed {task['title']}[/green]")


# Discipline and governance


@discipline_app.command("check")
def discipline_check(
    room_id: str = typer.Argument(..., help="Room ID"),
    user_id: str = typer.Argument(..., help="User to evaluate"),
    log: bool = typer.Option(False, "--log", help="Record warnings and removals"),
) -> None:
    """Evaluate a user's missed mandatory tasks in a room."""
    _run(_discipline_check(room_id, user_id, log))


async def _discipline_check(room_id: str, user_id: str, log: bool) -> None:
    settings = get_settings()
    db = await _open_db()
    engine = DisciplineEngine(SQLiteTaskSource(db), settings.discipline)

    report = await engine.evaluate(room_id, user_id)
    colors = {"ok": "green", "warning": "yellow", "remove": "red"}
    color = colors[report.result.value]

    console.print(
        f"Missed {report.missed} of {report.mandatory_total} mandatory tasks: "
        f"[{color}]{report.result.value}[/{color}]"
    )

    evaluator = DisciplineEvaluator(get_discipline_client(settings), settings.discipline)
    verdict = await evaluator.evaluate(await engine.gather(room_id, user_id))
    console.print(
        f"Recommendation: [bold]{verdict.recommendation.value}[/bold] "
        f"[dim]({verdict.source}: {verdict.reason})[/dim]"
    )

    action = RESULT_ACTIONS.get(report.result)
    if log and action is not None:
        await db.log_action(
            uuid.uuid4().hex,
            GovernanceScope.ROOM,
            room_id,
            action,
            executed_by="gemini" if verdict.source == "model" else "rules",
            target_user_id=user_id,
        )
        console.print(f"[dim]Logged {action.value}[/dim]")


@governance_app.command("list")
def governance_list(
    ref_id: Optional[str] = typer.Option(None, "--ref", "-r", help="Room, task or call ID"),
    scope: GovernanceScope = typer.Option(GovernanceScope.ROOM, "--scope", "-s"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="Target user ID"),
) -> None:
    """List automated moderation actions."""
    if (ref_id is None) == (user_id is None):
        console.print("[red]Give exactly one of --ref or --user[/red]")
        raise typer.Exit(1)
    _run(_governance_list(ref_id, scope, user_id))


async def _governance_list(
    ref_id: Optional[str], scope: GovernanceScope, user_id: Optional[str]
) -> None:
    db = await _open_db()
    if user_id is not None:
        rows = await db.get_logs_by_target_user(user_id)
    else:
        rows = await db.get_logs_by_ref(scope, ref_id)

    logs = [GovernanceLog.from_db_row(row) for row in rows]
    if not logs:
        console.print("[dim]No actions found.[/dim]")
        return

    table = Table(title="Governance Actions")
    table.add_column("When", style="yellow")
    table.add_column("Scope")
    table.add_column("Ref", style="cyan", no_wrap=True)
    table.add_column("Action", style="bold")
    table.add_column("Target")
    table.add_column("By", style="dim")

    for entry in logs:
        table.add_row(
            entry.created_at.isoformat()[:16],
            entry.scope.value,
            entry.ref_id[:8],
            entry.action.value,
            entry.target_user_id or "-",
            entry.executed_by,
        )

    console.print(table)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    console.print(Panel("[bold]Current Configuration[/bold]", border_style="blue"))

    console.print("\n[bold]API Keys:[/bold]")
    console.print(f"  Google: {'✓ Set' if settings.google_api_key else '✗ Not set'}")

    console.print("\n[bold]Moderator:[/bold]")
    status = "[green]model[/green]" if settings.moderator_available else "[yellow]templates[/yellow]"
    console.print(f"  Announcements: {status}")
    console.print(f"  Model: {settings.moderator.model_id}")
    console.print(f"  Timeout: {settings.moderator.timeout_seconds}s")

    console.print("\n[bold]Circle:[/bold]")
    console.print(f"  Speaking order: {settings.circle.speaking_order}")
    console.print(f"  Admin policy: {settings.circle.admin_policy}")

    console.print("\n[bold]Discipline:[/bold]")
    console.print(f"  Warning at: {settings.discipline.warning_missed} missed")
    console.print(f"  Remove at: {settings.discipline.remove_missed} missed")
    console.print(f"  Model evaluation: {'on' if settings.discipline_model_available else 'off'}")

    console.print("\n[bold]Storage:[/bold]")
    console.print(f"  Database: {settings.storage.resolved_database_path}")


if __name__ == "__main__":
    app()
