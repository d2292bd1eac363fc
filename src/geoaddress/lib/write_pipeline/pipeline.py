"""Pre-save and post-save rules for address writes.

Every write runs through the same deterministic pipeline.  The pre-save
rules are pure functions from a ``PendingWrite`` to a new ``PendingWrite``;
``plan_post_save`` turns the persisted record plus the pending write into a
``PostSaveActions`` plan that the service layer carries out.

Whether the caller supplied coordinates lives on the ``PendingWrite`` only,
so it cannot leak into a later write.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from geoaddress.models.address import ADDRESS_FIELDS, GEOCODING_OUTCOME_FIELDS, Address


@dataclass(frozen=True)
class PendingWrite:
    """Column changes about to be persisted for one address write.

    Attributes:
        changes: Column name → new value.
        is_create: True when the write inserts a new record.
        coordinates_supplied: True when the caller passed a latitude/longitude
            pair with this write.
        address_changed: True when an identity field changes value (updates only).
        latitude: Latitude given with the write, consumed by the pipeline.
        longitude: Longitude given with the write, consumed by the pipeline.
    """

    changes: dict[str, Any] = field(default_factory=dict)
    is_create: bool = False
    coordinates_supplied: bool = False
    address_changed: bool = False
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class PostSaveActions:
    """What must happen once a write is persisted."""

    stamp_geocoded_at: bool = False
    emit_geocoded: bool = False
    enqueue_geocoding: bool = False
    demote_siblings: bool = False


PreSaveRule = Callable[[Address | None, PendingWrite], PendingWrite]


def geocoding_enabled_after(current: Address | None, pending: PendingWrite) -> bool:
    """Effective ``geocoding_enabled`` once the pending changes are applied."""
    if "geocoding_enabled" in pending.changes:
        return bool(pending.changes["geocoding_enabled"])
    if current is None:
        return True
    return bool(current.geocoding_enabled)


def consume_coordinates(current: Address | None, pending: PendingWrite) -> PendingWrite:
    """Move a supplied latitude/longitude pair into the change set."""
    if pending.latitude is None or pending.longitude is None:
        return pending

    changes = dict(pending.changes)
    if geocoding_enabled_after(current, pending):
        changes["latitude"] = float(pending.latitude)
        changes["longitude"] = float(pending.longitude)
    return replace(pending, changes=changes, coordinates_supplied=True, latitude=None, longitude=None)


def enforce_geocoding_disabled(current: Address | None, pending: PendingWrite) -> PendingWrite:
    """Null every geocoding outcome field when geocoding is disabled."""
    if geocoding_enabled_after(current, pending):
        return pending
    changes = dict(pending.changes)
    changes.update(dict.fromkeys(GEOCODING_OUTCOME_FIELDS))
    return replace(pending, changes=changes)


def invalidate_on_address_change(current: Address | None, pending: PendingWrite) -> PendingWrite:
    """Clear the geocoding outcome when an identity field changes on update."""
    if pending.is_create or current is None:
        return pending

    changed = any(
        name in pending.changes and pending.changes[name] != getattr(current, name) for name in ADDRESS_FIELDS
    )
    if not changed:
        return pending

    changes = dict(pending.changes)
    if not pending.coordinates_supplied and geocoding_enabled_after(current, pending):
        changes.update(dict.fromkeys(GEOCODING_OUTCOME_FIELDS))
    return replace(pending, changes=changes, address_changed=True)


PRE_SAVE_RULES: tuple[PreSaveRule, ...] = (
    consume_coordinates,
    enforce_geocoding_disabled,
    invalidate_on_address_change,
)


def run_pre_save(
    current: Address | None,
    values: Mapping[str, Any],
    *,
    latitude: float | None = None,
    longitude: float | None = None,
) -> PendingWrite:
    """Build the change set for a write.

    Args:
        current: The persisted record for updates, None for creates.
        values: Incoming column values (without latitude/longitude).
        latitude: Caller-supplied latitude, if any.
        longitude: Caller-supplied longitude, if any.

    Returns:
        The pending write after every pre-save rule has run.
    """
    pending = PendingWrite(
        changes=dict(values),
        is_create=current is None,
        latitude=latitude,
        longitude=longitude,
    )
    for rule in PRE_SAVE_RULES:
        pending = rule(current, pending)
    return pending


def plan_post_save(address: Address, pending: PendingWrite) -> PostSaveActions:
    """Decide the follow-up work for a persisted write.

    Args:
        address: The record as persisted by this write.
        pending: The pending write that produced it.

    Returns:
        The actions the service layer must carry out.
    """
    demote = bool(address.is_primary)

    if not address.geocoding_enabled:
        return PostSaveActions(demote_siblings=demote)

    if pending.coordinates_supplied and address.coordinates is not None:
        return PostSaveActions(
            stamp_geocoded_at=pending.is_create or address.geocoded_at is None,
            emit_geocoded=True,
            demote_siblings=demote,
        )

    if pending.is_create:
        enqueue = address.needs_geocoding
    else:
        enqueue = pending.address_changed and address.needs_geocoding
    return PostSaveActions(enqueue_geocoding=enqueue, demote_siblings=demote)
