"""Geocoding CLI commands for single addresses and pending backfills."""

import asyncio
import uuid

import typer

geocode_app = typer.Typer()


@geocode_app.command("address")
def geocode_one(
    address_id: str = typer.Argument(..., help="Address UUID"),
) -> None:
    """Geocode one address now, bypassing the job queue."""
    try:
        parsed = uuid.UUID(address_id)
    except ValueError:
        typer.echo(f"Invalid address ID: {address_id}", err=True)
        raise typer.Exit(code=2) from None
    asyncio.run(_geocode_one(parsed))


@geocode_app.command("pending")
def geocode_pending_cmd(
    limit: int | None = typer.Option(None, "--limit", min=1, help="Maximum addresses to process"),
) -> None:
    """Geocode every address that has geocoding enabled but no coordinates."""
    asyncio.run(_geocode_pending(limit))


@geocode_app.command("providers")
def list_providers() -> None:
    """List registered geocoding providers and the configured ones."""
    from geoaddress.lib.geocoder import get_geocoder_factory

    factory = get_geocoder_factory()
    settings = factory.settings
    for name in factory.list_providers():
        marks = []
        if name == settings.geocoder_provider:
            marks.append("primary")
        if name == settings.geocoder_fallback_provider:
            marks.append("fallback")
        suffix = f" ({', '.join(marks)})" if marks else ""
        typer.echo(f"{name}{suffix}")


async def _geocode_one(address_id: uuid.UUID) -> None:
    """Async implementation of single-address geocoding."""
    from geoaddress.core.config import get_settings
    from geoaddress.core.database import dispose_engine, get_session_factory, init_engine
    from geoaddress.lib.geocoder import GeocoderConfigurationError
    from geoaddress.services.geocoding_service import GeocodingFailedError, geocode_address

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        try:
            address = await geocode_address(address_id, session_factory=get_session_factory())
        except GeocoderConfigurationError as e:
            typer.echo(f"Geocoder configuration error: {e}", err=True)
            raise typer.Exit(code=1) from None
        except GeocodingFailedError:
            typer.echo(f"Geocoding failed for address {address_id}", err=True)
            raise typer.Exit(code=1) from None

        if address is None:
            typer.echo(f"Nothing to do for address {address_id}")
        else:
            typer.echo(f"Geocoded {address_id}: {address.latitude}, {address.longitude}")
    finally:
        await dispose_engine()


async def _geocode_pending(limit: int | None) -> None:
    """Async implementation of the pending backfill."""
    from geoaddress.core.config import get_settings
    from geoaddress.core.database import dispose_engine, get_session_factory, init_engine
    from geoaddress.services.geocoding_service import geocode_pending

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        summary = await geocode_pending(limit=limit, session_factory=get_session_factory())
        typer.echo("Geocoding complete:")
        typer.echo(f"  Total records:  {summary.total}")
        typer.echo(f"  Succeeded:      {summary.succeeded}")
        typer.echo(f"  Failed:         {summary.failed}")
        typer.echo(f"  Skipped:        {summary.skipped}")
    finally:
        await dispose_engine()
