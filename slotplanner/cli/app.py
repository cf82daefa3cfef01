"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Annotated

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..adapters.json_store import JsonDataStore
from ..config import PlannerConfig, get_default_config_path
from ..domain.calendar import is_bookable_date, parse_calendar_date
from ..domain.models import WeekDay
from ..domain.schedule_codec import ScheduleCodec
from ..domain.slot_planner import DayStatus, group_slots_by_hour
from ..editor import BlockSelection
from ..services.booking import BookingService

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="slotplanner",
    help="Plan bookable appointment slots from social worker availability",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Appointment slot planning for the student-welfare office.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _build(config_file: Optional[Path]) -> Tuple[PlannerConfig, ScheduleCodec, JsonDataStore, BookingService]:
    config_path = config_file or get_default_config_path()
    config = PlannerConfig.load_from_yaml(config_path)
    codec = config.build_codec()
    store = JsonDataStore(config.resolve_data_file(config_path), timezone=config.timezone)
    service = BookingService(
        schedules=store,
        appointments=store,
        planner=config.build_planner(),
        codec=codec,
        weekly_limit=config.booking.weekly_limit,
    )
    return config, codec, store, service


def _require_worker(store: JsonDataStore, worker: str) -> None:
    if store.find_worker(worker) is None:
        console.print(f"[bold red]Error:[/bold red] Unknown social worker '{worker}'.")
        raise typer.Exit(1)


@app.command()
def workers(config_file: ConfigOption = None):
    """
    List all configured social workers.
    """
    try:
        _, codec, store, _ = _build(config_file)

        entries = store.workers()
        if not entries:
            console.print("[yellow]No social workers defined in the data file.[/yellow]")
            return

        table = Table(
            title="Social workers",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("ID", style="bold yellow")
        table.add_column("Name")
        table.add_column("E-mail", style="dim")
        table.add_column("Hours/week", justify="right")

        for worker_id, worker in entries.items():
            schedule = asyncio.run(store.get(worker_id))
            hours = "default" if schedule is None else f"{codec.weekly_minutes(schedule) / 60:.1f}"
            table.add_row(worker_id, worker.get("name", ""), worker.get("email", ""), hours)

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def slots(
    worker: Annotated[str, typer.Argument(help="Social worker ID")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Slot length in minutes")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Reference time (ISO-8601) for past-slot checks")] = None,
    student: Annotated[Optional[str], typer.Option("--student", "-s", help="Student ID to check against the weekly booking limit")] = None,
):
    """
    Show the bookable slots of a social worker on one day.

    Examples:

        slotplanner slots maria 2024-11-25

        slotplanner slots maria 2024-11-25 --duration 30 --now 2024-11-25T08:00

        slotplanner slots maria 2024-11-25 --student s-1001
    """
    try:
        config, _, store, service = _build(config_file)
        _require_worker(store, worker)

        calendar_date = parse_calendar_date(date)
        reference = pendulum.parse(now, tz=config.timezone) if now else None

        status = asyncio.run(service.day_status(worker_id=worker, date=calendar_date))
        if status is DayStatus.WEEKEND:
            console.print("\n[yellow]⚠ Weekends have no availability.[/yellow]\n")
            return
        if status is DayStatus.UNCONFIGURED:
            console.print("\n[yellow]⚠ No hours configured for this day.[/yellow]\n")
            return

        result = asyncio.run(
            service.available_slots(
                worker_id=worker,
                date=calendar_date,
                now=reference,
                slot_minutes=duration,
            )
        )

        today = (reference or pendulum.now(config.timezone)).date()
        if not is_bookable_date(
            calendar_date,
            today,
            config.booking.min_lead_days,
            config.booking.horizon_days,
        ):
            console.print("[dim]Note: this date is outside the student booking window.[/dim]")

        if student and asyncio.run(service.student_limit_reached(student_id=student, date=calendar_date)):
            console.print(
                f"[yellow]⚠ Student {student} already has {config.booking.weekly_limit} appointment(s) "
                f"this week and cannot book another.[/yellow]"
            )

        console.print()
        if not result:
            console.print("[yellow]⚠ No availability this day.[/yellow]\n")
            return

        available = sum(1 for s in result if s.is_available)
        console.print(
            f"[bold green]✓ {available} of {len(result)} slot(s) available on "
            f"{calendar_date.format('dddd DD.MM.YYYY')}:[/bold green]\n"
        )
        for hour, hour_slots in group_slots_by_hour(result).items():
            labels = [
                f"[blue]{s.start.format('HH:mm')}[/blue]" if s.is_available
                else f"[dim strike]{s.start.format('HH:mm')}[/dim strike]"
                for s in hour_slots
            ]
            console.print(f"  [bold]{hour:02d}:00[/bold]  " + "  ".join(labels))
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def schedule(
    worker: Annotated[str, typer.Argument(help="Social worker ID")],
    config_file: ConfigOption = None,
):
    """
    Show a social worker's weekly availability as an editor grid.
    """
    try:
        _, codec, store, service = _build(config_file)
        _require_worker(store, worker)

        weekly = asyncio.run(service.effective_schedule(worker))
        selection = BlockSelection.from_schedule(codec, weekly)

        table = Table(title=f"Availability of {worker}", show_header=True, header_style="bold cyan")
        table.add_column("Block", style="bold")
        for day in WeekDay:
            table.add_column(day.value.capitalize(), justify="center")

        for block in selection.grid:
            table.add_row(
                block,
                *["[green]■[/green]" if selection.is_selected(day, block) else "[dim]·[/dim]" for day in WeekDay],
            )

        console.print()
        console.print(table)
        for day in WeekDay:
            ranges = weekly.get(day) or []
            summary = ", ".join(str(r) for r in ranges) if ranges else "[dim italic]not available[/dim italic]"
            console.print(f"  {day.value.capitalize():<10} {summary}")
        console.print(
            f"\n  {len(selection.active_days())} active days • "
            f"{codec.weekly_minutes(weekly) / 60:.1f} hours per week\n"
        )

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _save_day(config_file: Optional[Path], worker: str, day: str, blocks: List[str]) -> None:
    _, codec, store, service = _build(config_file)
    _require_worker(store, worker)

    week_day = WeekDay.parse(day)
    current = asyncio.run(service.effective_schedule(worker))
    rewritten = [d for d in codec.off_grid_days(current) if d is not week_day]
    if rewritten:
        names = ", ".join(d.value for d in rewritten)
        logger.warning("Saving %s will rewrite off-grid ranges on %s", worker, names)
        console.print(f"[yellow]⚠ Ranges on {names} do not fit the editor grid and will be rewritten.[/yellow]")

    selection = BlockSelection.from_schedule(codec, current)
    selection.clear_day(week_day)
    for block in blocks:
        selection.select_run(week_day, block, block)

    saved = asyncio.run(service.save_block_selection(worker, selection.snapshot()))
    ranges = saved.get(week_day) or []
    summary = ", ".join(str(r) for r in ranges) if ranges else "not available"
    console.print(f"\n[green]✓ Saved {week_day.value}:[/green] {summary}\n")


@app.command()
def set_day(
    worker: Annotated[str, typer.Argument(help="Social worker ID")],
    day: Annotated[str, typer.Argument(help="Week day (monday..friday)")],
    blocks: Annotated[List[str], typer.Argument(help="Selected 30 minute blocks, e.g. 09:00 09:30")],
    config_file: ConfigOption = None,
):
    """
    Replace one day's availability with the given blocks.
    """
    try:
        _save_day(config_file, worker, day, blocks)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def clear_day(
    worker: Annotated[str, typer.Argument(help="Social worker ID")],
    day: Annotated[str, typer.Argument(help="Week day (monday..friday)")],
    config_file: ConfigOption = None,
):
    """
    Mark one day as unavailable.
    """
    try:
        _save_day(config_file, worker, day, [])
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotplanner[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
