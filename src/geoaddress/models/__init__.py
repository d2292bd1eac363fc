"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from geoaddress.models.address import Address
from geoaddress.models.addressable import AddressableMixin, register_owner_type

__all__ = [
    "Address",
    "AddressableMixin",
    "register_owner_type",
]
