"""Addressable capability — lets any ORM model own addresses.

Owners are referenced by an explicit (owner_type, owner_id) pair.  The
owner-type registry maps each tag to its model class so an address can load
its owner without reflection.

Usage::

    class Customer(Base, UUIDMixin, AddressableMixin):
        __tablename__ = "customers"
        __addressable_type__ = "customer"

    address = await customer.add_address(session, street="Avenida Paulista", city="Sao Paulo", state="SP")
"""

import uuid
from typing import Any, ClassVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from geoaddress.models.address import Address
from geoaddress.schemas.address import AddressCreate

_OWNER_TYPES: dict[str, type] = {}


def register_owner_type(tag: str, model: type) -> None:
    """Map an owner tag to the model class that owns addresses under it."""
    existing = _OWNER_TYPES.get(tag)
    if existing is not None and existing is not model:
        logger.warning(f"Overwriting owner type {tag!r}: {existing.__name__} -> {model.__name__}")
    _OWNER_TYPES[tag] = model


def get_owner_model(tag: str) -> type:
    """Return the model registered under an owner tag.

    Raises:
        KeyError: If the tag is not registered.
    """
    try:
        return _OWNER_TYPES[tag]
    except KeyError:
        msg = f"Unknown owner type: {tag!r}. Registered: {sorted(_OWNER_TYPES)}"
        raise KeyError(msg) from None


def registered_owner_types() -> list[str]:
    """Return all registered owner tags, sorted."""
    return sorted(_OWNER_TYPES)


async def load_owner(session: AsyncSession, address: Address) -> Any | None:
    """Load the entity that owns an address, or None if it no longer exists."""
    model = get_owner_model(address.owner_type)
    owner_id: Any = address.owner_id
    id_type = getattr(getattr(model, "id", None), "type", None)
    python_type = getattr(id_type, "python_type", None) if id_type is not None else None
    if python_type is uuid.UUID:
        owner_id = uuid.UUID(owner_id)
    elif python_type is int:
        owner_id = int(owner_id)
    return await session.get(model, owner_id)


class AddressableMixin:
    """Gives a model address ownership operations.

    The owner tag is ``__addressable_type__`` or, when unset, the model's
    ``__tablename__``.  The model must expose an ``id`` primary key.
    """

    __addressable_type__: ClassVar[str | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        tag = cls.__dict__.get("__addressable_type__") or cls.__dict__.get("__tablename__")
        if tag:
            cls.__addressable_type__ = tag
            register_owner_type(tag, cls)

    @property
    def addressable_type(self) -> str:
        tag = type(self).__addressable_type__
        if not tag:
            msg = f"{type(self).__name__} has no __addressable_type__ or __tablename__"
            raise TypeError(msg)
        return tag

    @property
    def addressable_id(self) -> str:
        return str(self.id)  # type: ignore[attr-defined]

    async def addresses(self, session: AsyncSession) -> list[Address]:
        """All of this owner's addresses, primary first."""
        from geoaddress.services.address_service import list_addresses

        return await list_addresses(session, self.addressable_type, self.addressable_id)

    async def add_address(
        self,
        session: AsyncSession,
        data: AddressCreate | None = None,
        **fields: Any,
    ) -> Address:
        """Create an address owned by this entity.

        Args:
            session: Database session.
            data: Validated address fields; alternatively pass them as keywords.
            **fields: Address fields (including an optional latitude/longitude
                pair) used when ``data`` is not given.

        Returns:
            The persisted Address.
        """
        from geoaddress.services.address_service import create_address

        if data is None:
            data = AddressCreate(**fields)
        elif fields:
            data = data.model_copy(update=fields)
        return await create_address(session, self.addressable_type, self.addressable_id, data)

    async def primary_address(self, session: AsyncSession) -> Address | None:
        """This owner's primary address, if any."""
        from geoaddress.services.address_service import get_primary_address

        return await get_primary_address(session, self.addressable_type, self.addressable_id)

    async def set_primary_address(self, session: AsyncSession, address_id: uuid.UUID) -> bool:
        """Promote one of this owner's addresses to primary.

        Returns:
            False if the address does not belong to this owner.
        """
        from geoaddress.services.address_service import set_primary_address

        return await set_primary_address(session, self.addressable_type, self.addressable_id, address_id)

    async def geocodable_addresses(self, session: AsyncSession) -> list[Address]:
        """This owner's addresses with geocoding enabled."""
        from geoaddress.services.address_service import list_addresses

        return await list_addresses(session, self.addressable_type, self.addressable_id, geocodable_only=True)

    async def full_address(self, session: AsyncSession) -> str | None:
        """Formatted primary address, or None without a primary address."""
        primary = await self.primary_address(session)
        return primary.formatted_address if primary is not None else None
