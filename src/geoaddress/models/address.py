"""Address model — polymorphic postal address with geocoding outcome."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, Double, Index, Select, String, Text, false, select, true
from sqlalchemy.orm import Mapped, mapped_column

from geoaddress.lib.geocoder.address import format_address
from geoaddress.lib.geocoder.base import Coordinates
from geoaddress.models.base import Base, TimestampMixin, UUIDMixin

# Fields that determine the physical location; changing any of them
# invalidates stored coordinates.
ADDRESS_FIELDS: tuple[str, ...] = (
    "street",
    "number",
    "complement",
    "neighbourhood",
    "city",
    "state",
    "postal_code",
    "country_code",
)

GEOCODING_OUTCOME_FIELDS: tuple[str, ...] = (
    "latitude",
    "longitude",
    "geocoded_at",
    "geocoding_failed_at",
    "geocoding_error",
)


class Address(Base, UUIDMixin, TimestampMixin):
    """Postal address owned by any host entity through an (owner_type, owner_id) pair.

    Geocoding is controlled in two layers.  ``geocoding_enabled`` is a
    permanent switch: billing or virtual addresses set it to False and never
    hold coordinates.  Enabled addresses get coordinates either from the
    caller or from the queued geocoding job.
    """

    __tablename__ = "addresses"

    # Owner reference
    owner_type: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Classification
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    # Geocoding control
    geocoding_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    # Postal fields
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    complement: Mapped[str | None] = mapped_column(String(100), nullable=True)
    neighbourhood: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False, default="BR", server_default="BR")
    reference_point: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Contact fields
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_country_code_phone: Mapped[str | None] = mapped_column(String(10), nullable=True)
    customer_document: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    extra_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    # Geocoding outcome
    latitude: Mapped[float | None] = mapped_column(Double, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Double, nullable=True)
    geocoded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    geocoding_failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    geocoding_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_addresses_owner_primary", "owner_type", "owner_id", "is_primary"),
        Index("ix_addresses_geocoding_enabled", "geocoding_enabled"),
    )

    @property
    def coordinates(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(lat=self.latitude, lng=self.longitude)

    @property
    def needs_geocoding(self) -> bool:
        """Whether the geocoding job should resolve this address.

        A recorded failure blocks automatic retries until the failure is
        cleared, which happens when the address fields change.
        """
        if not self.geocoding_enabled:
            return False
        return self.coordinates is None and self.geocoding_failed_at is None

    @property
    def formatted_address(self) -> str:
        return format_address(
            street=self.street,
            number=self.number,
            complement=self.complement,
            neighbourhood=self.neighbourhood,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            country_code=self.country_code,
        )

    def failed_recently(self, within_hours: float, now: datetime | None = None) -> bool:
        """Whether the last geocoding failure happened less than ``within_hours`` ago."""
        if self.geocoding_failed_at is None:
            return False
        failed_at = self.geocoding_failed_at
        # SQLite hands back naive datetimes; stored values are always UTC.
        if failed_at.tzinfo is None:
            failed_at = failed_at.replace(tzinfo=UTC)
        now = now or datetime.now(UTC)
        return (now - failed_at).total_seconds() < within_hours * 3600

    def __repr__(self) -> str:
        return f"<Address {self.id} {self.owner_type}:{self.owner_id} primary={self.is_primary}>"


def primary_addresses() -> Select[tuple[Address]]:
    """Select primary addresses."""
    return select(Address).where(Address.is_primary.is_(True))


def geocoded_addresses() -> Select[tuple[Address]]:
    """Select addresses that hold coordinates."""
    return select(Address).where(Address.geocoded_at.is_not(None))


def failed_addresses() -> Select[tuple[Address]]:
    """Select addresses whose last geocoding attempt failed."""
    return select(Address).where(Address.geocoding_failed_at.is_not(None))


def addresses_needing_geocoding() -> Select[tuple[Address]]:
    """Select addresses eligible for the geocoding job."""
    return select(Address).where(
        Address.geocoding_enabled.is_(True),
        Address.latitude.is_(None),
        Address.geocoding_failed_at.is_(None),
    )


def geocoding_enabled_addresses() -> Select[tuple[Address]]:
    """Select addresses with geocoding enabled."""
    return select(Address).where(Address.geocoding_enabled.is_(True))
