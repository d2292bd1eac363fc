"""Geocoding service — the queued job that resolves an address to coordinates.

The job re-reads the address on every attempt and re-checks eligibility,
so retries and duplicate deliveries are harmless.  Its own writes use a
plain UPDATE statement: they record the geocoding outcome and must not be
treated as an address edit by the write pipeline.
"""

import uuid
from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from geoaddress.core.background import JobQueue, RetryPolicy, get_job_queue
from geoaddress.core.config import Settings, get_settings
from geoaddress.core.database import get_session_factory
from geoaddress.core.events import AddressGeocoded, EventBus, event_bus
from geoaddress.lib.geocoder import Coordinates, GeocoderConfigurationError, GeocoderFactory, get_geocoder_factory
from geoaddress.models.address import Address
from geoaddress.models.base import utcnow

GEOCODE_ADDRESS_JOB = "geocode_address"
GEOCODING_ERROR_MESSAGE = "Unable to geocode address"


class GeocodingFailedError(Exception):
    """Raised when no provider could geocode an address; triggers a job retry."""

    def __init__(self, address_id: uuid.UUID) -> None:
        self.address_id = address_id
        super().__init__(f"Geocoding failed for address {address_id}")


def unique_key(address_id: uuid.UUID) -> str:
    """Dedup key that keeps one geocoding job per address in flight."""
    return f"geocode-address-{address_id}"


def enqueue_geocoding(
    address_id: uuid.UUID,
    *,
    queue: JobQueue | None = None,
    unique_for: float | None = None,
) -> str | None:
    """Queue the geocoding job for an address.

    Args:
        address_id: Address to geocode.
        queue: Job queue; defaults to the process-wide queue.
        unique_for: Seconds the per-address uniqueness lock is held at most;
            defaults to the value the job was registered with.

    Returns:
        The job ID, or None if a job for this address is already pending.
    """
    queue = queue or default_geocoding_queue()
    job_id = queue.enqueue(
        GEOCODE_ADDRESS_JOB,
        address_id,
        unique_key=unique_key(address_id),
        unique_for=unique_for,
    )
    if job_id is None:
        logger.debug(f"Geocoding job for address {address_id} already pending")
    else:
        logger.debug(f"Queued geocoding job {job_id} for address {address_id}")
    return job_id


async def resolve_coordinates(address: Address, factory: GeocoderFactory) -> tuple[str, Coordinates] | None:
    """Geocode with the primary provider, then the fallback provider if distinct.

    Args:
        address: Address to geocode.
        factory: Provider factory; its settings name the providers.

    Returns:
        Tuple of (provider_name, coordinates), or None if every provider failed.

    Raises:
        GeocoderConfigurationError: If a configured provider is not registered.
    """
    primary = factory.make()
    coordinates = await primary.geocode(address)
    if coordinates is not None:
        return primary.provider_name, coordinates

    fallback_name = factory.settings.geocoder_fallback_provider
    if fallback_name and fallback_name != primary.provider_name:
        fallback = factory.make(fallback_name)
        logger.info(
            f"Primary geocoder {primary.provider_name} found nothing for address {address.id}, "
            f"trying {fallback_name}"
        )
        coordinates = await fallback.geocode(address)
        if coordinates is not None:
            return fallback.provider_name, coordinates

    return None


async def geocode_address(
    address_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    factory: GeocoderFactory | None = None,
    events: EventBus | None = None,
) -> Address | None:
    """Run one attempt of the geocoding job for an address.

    Skips (returning None) when the address is gone, has geocoding
    disabled, already has coordinates, or failed within the cool-down.

    Args:
        address_id: Address to geocode.
        session_factory: Session factory; defaults to the configured one.
        factory: Provider factory; defaults to the process-wide factory.
        events: Event bus; defaults to the process-wide bus.

    Returns:
        The geocoded Address, or None if the job had nothing to do.

    Raises:
        GeocodingFailedError: If every provider failed; the failure is
            persisted first.
        GeocoderConfigurationError: If a configured provider is not registered.
    """
    session_factory = session_factory or get_session_factory()
    factory = factory or get_geocoder_factory()
    cooldown_hours = factory.settings.geocoder_failure_cooldown_hours

    async with session_factory() as session:
        address = await session.get(Address, address_id)

        if address is None:
            logger.info(f"Geocoding skipped for address {address_id}: not found")
            return None
        if not address.geocoding_enabled:
            logger.info(f"Geocoding skipped for address {address_id}: geocoding disabled")
            return None
        if address.coordinates is not None:
            logger.info(f"Geocoding skipped for address {address_id}: already has coordinates")
            return None
        if address.failed_recently(cooldown_hours):
            logger.info(f"Geocoding skipped for address {address_id}: recently failed")
            return None

        resolved = await resolve_coordinates(address, factory)
        now = utcnow()

        if resolved is None:
            await _record_outcome(
                session,
                address_id,
                geocoding_failed_at=now,
                geocoding_error=GEOCODING_ERROR_MESSAGE,
            )
            logger.warning(f"Failed to geocode address {address_id}: {address.formatted_address}")
            raise GeocodingFailedError(address_id)

        provider_name, coordinates = resolved
        await _record_outcome(
            session,
            address_id,
            latitude=coordinates.lat,
            longitude=coordinates.lng,
            geocoded_at=now,
            geocoding_failed_at=None,
            geocoding_error=None,
        )
        await session.refresh(address)

    logger.info(f"Geocoded address {address_id} with {provider_name}: {address.formatted_address}")
    await (events or event_bus).publish(AddressGeocoded(address=address, provider=provider_name))
    return address


async def _record_outcome(session: AsyncSession, address_id: uuid.UUID, **values: Any) -> None:
    """Write geocoding outcome columns without going through the write pipeline."""
    await session.execute(
        update(Address)
        .where(Address.id == address_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await session.commit()


def register_geocoding_job(
    queue: JobQueue,
    settings: Settings,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    factory: GeocoderFactory | None = None,
    events: EventBus | None = None,
) -> None:
    """Register the geocoding job handler and its retry policy on a queue.

    Attempts and backoff come from ``geocoder_retry_times`` and
    ``geocoder_retry_sleep``, the uniqueness lock TTL from
    ``geocoder_unique_for``.  Configuration errors are not retried.
    """

    async def handler(address_id: uuid.UUID) -> None:
        await geocode_address(address_id, session_factory=session_factory, factory=factory, events=events)

    queue.register(
        GEOCODE_ADDRESS_JOB,
        handler,
        RetryPolicy(
            max_attempts=settings.geocoder_retry_times,
            backoff_seconds=settings.geocoder_retry_sleep,
            give_up_on=(GeocoderConfigurationError,),
        ),
        unique_for=settings.geocoder_unique_for,
    )


def default_geocoding_queue() -> JobQueue:
    """Return the process-wide job queue with the geocoding job registered on it."""
    queue = get_job_queue()
    if not queue.is_registered(GEOCODE_ADDRESS_JOB):
        register_geocoding_job(queue, get_settings())
    return queue


@dataclass
class BackfillSummary:
    """Counts from a geocode_pending run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0


async def geocode_pending(
    *,
    limit: int | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    factory: GeocoderFactory | None = None,
    events: EventBus | None = None,
) -> BackfillSummary:
    """Geocode every address that needs it, one job attempt each, in this task.

    Args:
        limit: Maximum addresses to process.
        session_factory: Session factory; defaults to the configured one.
        factory: Provider factory; defaults to the process-wide factory.
        events: Event bus; defaults to the process-wide bus.

    Returns:
        Summary counts.
    """
    from geoaddress.services.address_service import list_addresses_needing_geocoding

    session_factory = session_factory or get_session_factory()
    async with session_factory() as session:
        pending_ids = [a.id for a in await list_addresses_needing_geocoding(session, limit=limit)]

    summary = BackfillSummary(total=len(pending_ids))
    logger.info(f"Geocoding {summary.total} pending addresses")
    for address_id in pending_ids:
        try:
            result = await geocode_address(address_id, session_factory=session_factory, factory=factory, events=events)
        except GeocodingFailedError:
            summary.failed += 1
            continue
        if result is None:
            summary.skipped += 1
        else:
            summary.succeeded += 1

    logger.info(
        f"Geocoding complete: {summary.succeeded} succeeded, {summary.failed} failed, "
        f"{summary.skipped} skipped out of {summary.total}"
    )
    return summary
