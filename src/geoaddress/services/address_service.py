"""Address service — creates and updates addresses through the write pipeline.

Every write runs the pre-save rules, persists the change set, carries out
the post-save plan inside the same transaction, and only after commit
enqueues the geocoding job or publishes ``AddressGeocoded``.  Geocoding is
never awaited here: a slow or failing provider cannot block or fail a write.
"""

import uuid
from typing import Any

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from geoaddress.core.background import JobQueue
from geoaddress.core.events import AddressGeocoded, EventBus, event_bus
from geoaddress.lib.write_pipeline import PendingWrite, PostSaveActions, plan_post_save, run_pre_save
from geoaddress.models.address import Address, addresses_needing_geocoding
from geoaddress.models.base import utcnow
from geoaddress.schemas.address import AddressCreate, AddressUpdate


async def create_address(
    session: AsyncSession,
    owner_type: str,
    owner_id: Any,
    data: AddressCreate,
    *,
    default_country_code: str | None = None,
    queue: JobQueue | None = None,
    events: EventBus | None = None,
) -> Address:
    """Create an address for an owner.

    Args:
        session: Database session.
        owner_type: Owner tag (see ``register_owner_type``).
        owner_id: Owner primary key; stored as a string.
        data: Validated address fields, optionally with a coordinate pair.
        default_country_code: Country used when ``data`` has none; the
            column default applies when this is None too.
        queue: Job queue for geocoding; defaults to the process-wide queue.
        events: Event bus; defaults to the process-wide bus.

    Returns:
        The persisted Address.
    """
    values = data.column_values()
    if default_country_code and "country_code" not in values:
        values["country_code"] = default_country_code
    pending = run_pre_save(None, values, latitude=data.latitude, longitude=data.longitude)

    address = Address(owner_type=owner_type, owner_id=str(owner_id))
    _apply(address, pending.changes)
    session.add(address)
    await session.flush()

    return await _finish_write(session, address, pending, queue=queue, events=events)


async def update_address(
    session: AsyncSession,
    address: Address,
    data: AddressUpdate,
    *,
    queue: JobQueue | None = None,
    events: EventBus | None = None,
) -> Address:
    """Update an address with the explicitly set fields of ``data``.

    Args:
        session: Database session.
        address: Persisted address to change.
        data: Validated partial update, optionally with a coordinate pair.
        queue: Job queue for geocoding; defaults to the process-wide queue.
        events: Event bus; defaults to the process-wide bus.

    Returns:
        The updated Address.
    """
    pending = run_pre_save(address, data.column_values(), latitude=data.latitude, longitude=data.longitude)

    _apply(address, pending.changes)
    await session.flush()

    return await _finish_write(session, address, pending, queue=queue, events=events)


def _apply(address: Address, changes: dict[str, Any]) -> None:
    for name, value in changes.items():
        setattr(address, name, value)


async def _finish_write(
    session: AsyncSession,
    address: Address,
    pending: PendingWrite,
    *,
    queue: JobQueue | None,
    events: EventBus | None,
) -> Address:
    """Carry out the post-save plan, commit, then dispatch side effects."""
    actions = plan_post_save(address, pending)

    if actions.stamp_geocoded_at:
        address.geocoded_at = utcnow()
    if actions.demote_siblings:
        await demote_sibling_primaries(session, address)

    await session.commit()
    await session.refresh(address)

    await _dispatch(address, actions, queue=queue, events=events)
    return address


async def _dispatch(
    address: Address,
    actions: PostSaveActions,
    *,
    queue: JobQueue | None,
    events: EventBus | None,
) -> None:
    if actions.emit_geocoded:
        logger.info(f"Address {address.id} geocoded from supplied coordinates")
        await (events or event_bus).publish(AddressGeocoded(address=address))

    if actions.enqueue_geocoding:
        from geoaddress.services.geocoding_service import enqueue_geocoding

        enqueue_geocoding(address.id, queue=queue)


async def demote_sibling_primaries(session: AsyncSession, address: Address) -> None:
    """Clear ``is_primary`` on every other primary address of the same owner.

    Read-then-write without a lock: two concurrent promotions for one owner
    can briefly leave two primaries.
    """
    await session.execute(
        update(Address)
        .where(
            Address.owner_type == address.owner_type,
            Address.owner_id == address.owner_id,
            Address.id != address.id,
            Address.is_primary.is_(True),
        )
        .values(is_primary=False)
        .execution_options(synchronize_session="fetch")
    )


async def get_address(session: AsyncSession, address_id: uuid.UUID) -> Address | None:
    """Get an address by ID."""
    return await session.get(Address, address_id)


async def list_addresses(
    session: AsyncSession,
    owner_type: str,
    owner_id: Any,
    *,
    geocodable_only: bool = False,
) -> list[Address]:
    """List an owner's addresses, primary first then oldest first.

    Args:
        session: Database session.
        owner_type: Owner tag.
        owner_id: Owner primary key.
        geocodable_only: Only return addresses with geocoding enabled.

    Returns:
        The owner's addresses.
    """
    query = select(Address).where(Address.owner_type == owner_type, Address.owner_id == str(owner_id))
    if geocodable_only:
        query = query.where(Address.geocoding_enabled.is_(True))
    query = query.order_by(Address.is_primary.desc(), Address.created_at, Address.id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_primary_address(session: AsyncSession, owner_type: str, owner_id: Any) -> Address | None:
    """Get an owner's primary address, if any."""
    result = await session.execute(
        select(Address)
        .where(
            Address.owner_type == owner_type,
            Address.owner_id == str(owner_id),
            Address.is_primary.is_(True),
        )
        .order_by(Address.updated_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def set_primary_address(
    session: AsyncSession,
    owner_type: str,
    owner_id: Any,
    address_id: uuid.UUID,
    *,
    queue: JobQueue | None = None,
    events: EventBus | None = None,
) -> bool:
    """Make one of an owner's addresses primary and demote the others.

    Args:
        session: Database session.
        owner_type: Owner tag.
        owner_id: Owner primary key.
        address_id: Address to promote.
        queue: Job queue for geocoding; defaults to the process-wide queue.
        events: Event bus; defaults to the process-wide bus.

    Returns:
        False if the address does not belong to the owner, True otherwise.
    """
    result = await session.execute(
        select(Address).where(
            Address.id == address_id,
            Address.owner_type == owner_type,
            Address.owner_id == str(owner_id),
        )
    )
    address = result.scalar_one_or_none()
    if address is None:
        return False

    await update_address(session, address, AddressUpdate(is_primary=True), queue=queue, events=events)
    return True


async def list_addresses_needing_geocoding(session: AsyncSession, limit: int | None = None) -> list[Address]:
    """List addresses eligible for the geocoding job, oldest first."""
    query = addresses_needing_geocoding().order_by(Address.created_at, Address.id)
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())
