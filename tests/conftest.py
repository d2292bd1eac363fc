"""Shared test fixtures for settings, async database sessions, queues and geocoders."""

import uuid
from collections.abc import AsyncGenerator
from typing import Any

import pytest
from sqlalchemy import String
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from geoaddress.core.config import Settings
from geoaddress.core.events import InProcessEventBus
from geoaddress.lib.geocoder import BaseGeocoder, Coordinates, GeocodableAddress, GeocoderFactory
from geoaddress.models import AddressableMixin
from geoaddress.models.base import Base, UUIDMixin


class Customer(Base, UUIDMixin, AddressableMixin):
    """Minimal host entity used to exercise address ownership."""

    __tablename__ = "customers"
    __addressable_type__ = "customer"

    name: Mapped[str] = mapped_column(String(100), nullable=False)


class RecordingQueue:
    """Job queue double that records enqueues instead of running them."""

    def __init__(self) -> None:
        self.enqueued: list[tuple[str, Any, str | None]] = []
        self.registered: dict[str, Any] = {}

    def register(self, kind: str, handler: Any, retry: Any = None, *, unique_for: float | None = None) -> None:
        self.registered[kind] = (handler, retry, unique_for)

    def enqueue(
        self,
        kind: str,
        record_id: Any,
        *,
        unique_key: str | None = None,
        unique_for: float | None = None,
    ) -> str | None:
        self.enqueued.append((kind, record_id, unique_key))
        return str(uuid.uuid4())

    def is_registered(self, kind: str) -> bool:
        return kind in self.registered

    def get_status(self, job_id: str) -> Any:
        raise KeyError(job_id)


class StubGeocoder(BaseGeocoder):
    """Geocoder returning a fixed result and counting calls."""

    def __init__(self, name: str, result: Coordinates | None) -> None:
        super().__init__()
        self._name = name
        self.result = result
        self.calls: list[Any] = []

    @property
    def provider_name(self) -> str:
        return self._name

    async def geocode(self, address: GeocodableAddress) -> Coordinates | None:
        self.calls.append(address.id)
        return self.result


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        geocoder_provider="primary",
        geocoder_fallback_provider=None,
        geocoder_retry_sleep=0,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine shared by every session of a test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def queue() -> RecordingQueue:
    """Recording job queue."""
    return RecordingQueue()


@pytest.fixture
def events() -> InProcessEventBus:
    """Isolated event bus."""
    return InProcessEventBus()


@pytest.fixture
def primary_geocoder() -> StubGeocoder:
    return StubGeocoder("primary", Coordinates(lat=-23.5613, lng=-46.6565))


@pytest.fixture
def fallback_geocoder() -> StubGeocoder:
    return StubGeocoder("fallback", Coordinates(lat=-23.5, lng=-46.6))


@pytest.fixture
def geocoder_factory(
    settings: Settings,
    primary_geocoder: StubGeocoder,
    fallback_geocoder: StubGeocoder,
) -> GeocoderFactory:
    """Factory whose 'primary' and 'fallback' providers are stubs."""
    factory = GeocoderFactory(settings)
    factory.extend("primary", lambda _settings: primary_geocoder)
    factory.extend("fallback", lambda _settings: fallback_geocoder)
    return factory


@pytest.fixture
async def customer(async_session: AsyncSession) -> Customer:
    """A persisted customer."""
    entity = Customer(name="Maria Silva")
    async_session.add(entity)
    await async_session.commit()
    return entity


@pytest.fixture
def paulista() -> dict[str, Any]:
    """Fields of a complete Brazilian address."""
    return {
        "street": "Avenida Paulista",
        "number": "1578",
        "neighbourhood": "Bela Vista",
        "city": "Sao Paulo",
        "state": "SP",
        "postal_code": "01310-200",
        "country_code": "BR",
    }
