"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import List, Optional, Annotated

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.table import Table

from ..config import AppConfig, PropertySettings, get_default_config_path
from ..adapters.json_store import JsonShowingStore
from ..adapters.rest_store import RestShowingStore
from ..domain.exceptions import ShowingSlotsError
from ..domain.layout import LayoutResolver
from ..domain.models import CandidateSlot, ClientInfo, DaySlotGroup, ShowingStatus
from ..domain.slot_generator import (
    DATE_KEY_FORMAT,
    count_showings_in_week,
    group_slots_by_time_of_day,
)
from ..domain.timezones import short_timezone_name
from ..services.booking import BookingService, ShowingStore

app = typer.Typer(
    name="showingslots",
    help="Compute bookable showing slots and book showings without double-booking",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]

START_FORMAT = "YYYY-MM-DD HH:mm"


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Showing slot and booking tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def build_store(config: AppConfig) -> ShowingStore:
    """Create the showing store configured in ``store``."""
    if config.store.base_url:
        return RestShowingStore(base_url=config.store.base_url, api_key=config.store.api_key)
    return JsonShowingStore(path=config.store.path)


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {error}")
    return typer.Exit(1)


def _parse_local_start(value: str, prop: PropertySettings) -> DateTime:
    try:
        return pendulum.from_format(value, START_FORMAT, tz=prop.timezone)
    except ValueError as exc:
        raise ValueError(f"Could not parse start '{value}', expected {START_FORMAT}: {exc}") from exc


def _select_slot(groups: List[DaySlotGroup], start: DateTime) -> CandidateSlot:
    """
    Find the offered slot starting at ``start``.

    Raises:
        ValueError: If no generated slot starts at that time
    """
    date_key = start.format(DATE_KEY_FORMAT)
    for group in groups:
        if group.date_key != date_key:
            continue
        slot = group.find(start)
        if slot is not None:
            return slot
    raise ValueError(
        f"{start.format(START_FORMAT)} is not an offered slot. Run 'showingslots slots' to see the grid."
    )


def _print_groups(groups: List[DaySlotGroup], timezone: str, show_all: bool) -> None:
    if not groups:
        console.print(
            "[yellow]⚠ No showing times available.[/yellow]\n"
            "Check the agent's working hours or try a longer booking window."
        )
        return

    title = f"Showing slots ({timezone}, {short_timezone_name(timezone)})"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold yellow")
    table.add_column("Morning")
    table.add_column("Afternoon")
    table.add_column("Evening")

    for group in groups:
        slots = group.slots if show_all else group.available_slots
        buckets = group_slots_by_time_of_day(slots)
        cells = []
        for name in ("morning", "afternoon", "evening"):
            labels = [
                slot.label if slot.available else f"[dim strike]{slot.label}[/dim strike]"
                for slot in buckets[name]
            ]
            cells.append(", ".join(labels) or "-")
        table.add_row(f"{group.display_date}\n[dim]{group.date_key}[/dim]", *cells)

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    property_id: Annotated[str, typer.Argument(help="Property id from the config file")],
    config_file: ConfigOption = None,
    date: Annotated[Optional[str], typer.Option("--date", help="Only show this day (YYYY-MM-DD)")] = None,
    show_all: Annotated[bool, typer.Option("--all", help="Include slots that are taken or in the past")] = False,
):
    """
    List bookable showing slots for a property.

    Examples:

        showingslots slots prop-1
        showingslots slots prop-1 --date 2024-11-25 --all
    """
    try:
        config = _load_config(config_file)
        prop = config.require_property(property_id)
        service = BookingService(build_store(config))

        groups = service.find_slots(agent=config.agent, prop=prop)
        if date:
            groups = [group for group in groups if group.date_key == date]

        _print_groups(groups, prop.timezone, show_all)

        booked = count_showings_in_week(
            service.fetch_intervals(prop.id), pendulum.now("UTC"), prop.timezone
        )
        console.print(f"[dim]{booked} showing(s) booked this week[/dim]")

    except (ShowingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def book(
    property_id: Annotated[str, typer.Argument(help="Property id from the config file")],
    start: Annotated[str, typer.Argument(help="Slot start in the property's timezone (YYYY-MM-DD HH:mm)")],
    name: Annotated[str, typer.Option("--name", help="Client name")],
    email: Annotated[str, typer.Option("--email", help="Client email")],
    phone: Annotated[str, typer.Option("--phone", help="Client phone")] = "",
    notes: Annotated[str, typer.Option("--notes", help="Notes for the agent")] = "",
    pre_approved: Annotated[bool, typer.Option("--pre-approved", help="Client is pre-approved")] = False,
    config_file: ConfigOption = None,
):
    """
    Book a showing into an offered slot.
    """
    try:
        config = _load_config(config_file)
        prop = config.require_property(property_id)
        if not prop.is_booking_enabled:
            raise ValueError(f"Booking is disabled for property '{property_id}'")

        service = BookingService(build_store(config))
        groups = service.find_slots(agent=config.agent, prop=prop)
        slot = _select_slot(groups, _parse_local_start(start, prop))

        showing_id = service.commit_booking(
            slot,
            prop.id,
            ClientInfo(name=name, email=email, phone=phone, notes=notes, pre_approved=pre_approved),
            agent_id=prop.agent_id,
        )
        console.print(
            f"[green]✓ Showing {showing_id} booked for {slot.start.format('dddd, MMM D')} at {slot.label}[/green]"
        )

    except (ShowingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def reschedule(
    property_id: Annotated[str, typer.Argument(help="Property id from the config file")],
    showing_id: Annotated[str, typer.Argument(help="Showing to move")],
    start: Annotated[str, typer.Argument(help="New start in the property's timezone (YYYY-MM-DD HH:mm)")],
    config_file: ConfigOption = None,
):
    """
    Move a showing into another offered slot.
    """
    try:
        config = _load_config(config_file)
        prop = config.require_property(property_id)
        service = BookingService(build_store(config))

        groups = service.find_slots(agent=config.agent, prop=prop, exclude_showing_id=showing_id)
        slot = _select_slot(groups, _parse_local_start(start, prop))

        record = service.reschedule_showing(showing_id, prop.id, slot)
        local = record.scheduled_at.in_timezone(prop.timezone)
        console.print(f"[green]✓ Showing {showing_id} moved to {local.format('dddd, MMM D h:mm A')}[/green]")

    except (ShowingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def status(
    property_id: Annotated[str, typer.Argument(help="Property id from the config file")],
    showing_id: Annotated[str, typer.Argument(help="Showing to update")],
    new_status: Annotated[ShowingStatus, typer.Argument(help="New status", metavar="STATUS")],
    reason: Annotated[Optional[str], typer.Option("--reason", help="Cancellation reason")] = None,
    config_file: ConfigOption = None,
):
    """
    Confirm, complete, cancel or mark a showing as no-show.
    """
    try:
        config = _load_config(config_file)
        prop = config.require_property(property_id)
        service = BookingService(build_store(config))

        record = service.update_status(showing_id, prop.id, new_status, reason=reason)
        console.print(f"[green]✓ Showing {showing_id} is now {record.status.value}[/green]")

    except (ShowingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def layout(
    property_id: Annotated[str, typer.Argument(help="Property id from the config file")],
    date: Annotated[str, typer.Argument(help="Day to lay out (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Show how a day's showings are placed side by side on the calendar.
    """
    try:
        config = _load_config(config_file)
        prop = config.require_property(property_id)
        service = BookingService(build_store(config))

        day = pendulum.from_format(date, DATE_KEY_FORMAT, tz=prop.timezone)
        showings = [
            showing for showing in service.fetch_intervals(prop.id)
            if showing.start.in_timezone(prop.timezone).format(DATE_KEY_FORMAT) == day.format(DATE_KEY_FORMAT)
        ]

        if not showings:
            console.print(f"[yellow]No showings on {date}.[/yellow]")
            return

        resolver = LayoutResolver.for_grid(
            config.calendar.pixels_per_hour,
            config.calendar.min_block_height,
        )
        grid_start, _ = config.agent.to_availability().visible_hour_range()
        by_id = {showing.showing_id: showing for showing in showings}

        table = Table(title=f"Calendar layout {date}", show_header=True, header_style="bold cyan")
        table.add_column("Time", style="bold yellow")
        table.add_column("Showing", style="dim")
        table.add_column("Status")
        table.add_column("Column", justify="right")
        table.add_column("Top/Height px", justify="right")
        table.add_column("Left/Width %", justify="right")

        for assignment in resolver.compute_layout(showings):
            showing = by_id[assignment.showing_id]
            position = resolver.place(showing, assignment, prop.timezone, grid_start_hour=grid_start)
            table.add_row(
                showing.start.in_timezone(prop.timezone).format("h:mm A"),
                showing.showing_id,
                showing.status.value,
                f"{assignment.column + 1}/{assignment.total_columns}",
                f"{position.top:.0f} / {position.height:.0f}",
                f"{position.left_percent:.1f} / {position.width_percent:.1f}",
            )

        console.print()
        console.print(table)
        console.print()

    except (ShowingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]showingslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
