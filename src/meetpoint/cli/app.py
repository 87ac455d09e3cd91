"""Typer CLI: a thin terminal shell over a persisted meeting-point session."""

import asyncio
from collections.abc import Awaitable, Callable

import typer

from meetpoint.core.config import Settings, get_settings
from meetpoint.core.logging import setup_logging
from meetpoint.lib.geodesy import format_coordinate
from meetpoint.lib.persistence import JsonFileStore
from meetpoint.lib.presentation import PresentationEvent, ResolutionError
from meetpoint.lib.resolver import BasePlaceResolver, get_resolver
from meetpoint.services.session import MeetingPointSession

app = typer.Typer(name="meetpoint", help="Find the meeting point of a group of cities")


class EchoPresenter:
    """Prints resolution errors as they happen; everything else is summarized at the end."""

    def notify(self, event: PresentationEvent) -> None:
        if isinstance(event, ResolutionError):
            typer.secho(f"Could not find {event.name!r}: {event.message}", fg=typer.colors.RED, err=True)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_logs=settings.log_json)


@app.command()
def add(names: list[str] = typer.Argument(..., help="City names to add (repeat a name to weight it)")) -> None:  # noqa: B008
    """Add cities and recompute the meeting point."""

    async def action(session: MeetingPointSession) -> None:
        for name in names:
            try:
                session.add_city(name)
            except ValueError as e:
                typer.secho(str(e), fg=typer.colors.RED, err=True)

    asyncio.run(_run(action))


@app.command()
def remove(name: str = typer.Argument(..., help="City name; removes one occurrence")) -> None:  # noqa: B008
    """Remove one occurrence of a city."""

    async def action(session: MeetingPointSession) -> None:
        if not session.remove_city(name):
            typer.secho(f"{name!r} is not in the list", fg=typer.colors.YELLOW, err=True)

    asyncio.run(_run(action))


@app.command()
def show() -> None:
    """Show the saved cities and meeting point."""

    async def action(session: MeetingPointSession) -> None:
        return None

    asyncio.run(_run(action))


@app.command()
def clear() -> None:
    """Remove every city."""

    async def action(session: MeetingPointSession) -> None:
        session.clear()

    asyncio.run(_run(action))


def _build_resolver(settings: Settings) -> BasePlaceResolver:
    return get_resolver(
        "nominatim",
        timeout=settings.resolver_timeout,
        email=settings.nominatim_email,
        user_agent=settings.user_agent,
        base_url=settings.nominatim_base_url,
        fine_zoom=settings.reverse_fine_zoom,
        coarse_zoom=settings.reverse_coarse_zoom,
        settlement_span=settings.settlement_search_span,
    )


async def _run(action: Callable[[MeetingPointSession], Awaitable[None]]) -> None:
    """Restore the session, apply an action, wait for it to settle, print, save."""
    settings = get_settings()
    session = MeetingPointSession(
        _build_resolver(settings),
        JsonFileStore(settings.state_dir),
        EchoPresenter(),
        pacing_interval=settings.pacing_interval,
    )
    await session.restore()
    await action(session)
    await session.close()
    _print_summary(session)


def _print_summary(session: MeetingPointSession) -> None:
    legs = session.itinerary()
    if not legs:
        typer.echo("No cities yet. Add some with: meetpoint add <city> ...")
        return

    typer.echo("Cities:")
    for leg in legs:
        count = f" x{leg.group.count}" if leg.group.count > 1 else ""
        distance = f"  {leg.distance_km:,.0f} km" if leg.distance_km is not None else ""
        typer.echo(f"  {leg.group.name}{count}{distance}")

    aggregate = session.aggregate
    if aggregate is None:
        return
    loc = aggregate.result_location
    typer.echo("")
    typer.echo(f"Meeting point: {loc.place_label}, {loc.country}")
    typer.echo(f"  Coordinates: {format_coordinate(loc.coordinate, digits=6)}")
    typer.echo(f"  Address:     {loc.full_address}")
