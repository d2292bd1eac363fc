"""Abstract base geocoder interface for pluggable provider support."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Coordinates:
    """A resolved latitude/longitude pair (WGS 84)."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (-90 <= self.lat <= 90):
            msg = f"latitude must be between -90 and 90, got {self.lat}"
            raise ValueError(msg)
        if not (-180 <= self.lng <= 180):
            msg = f"longitude must be between -180 and 180, got {self.lng}"
            raise ValueError(msg)

    @property
    def is_null_island(self) -> bool:
        """Whether this is the (0, 0) sentinel some APIs return instead of an error."""
        return self.lat == 0.0 and self.lng == 0.0


class GeocodableAddress(Protocol):
    """The parts of an address record a provider reads."""

    id: Any
    street: str
    number: str | None
    city: str
    state: str
    postal_code: str | None
    country_code: str

    @property
    def formatted_address(self) -> str: ...


class GeocoderConfigurationError(Exception):
    """Raised when a geocoder provider is unknown or cannot be built from configuration."""


class BaseGeocoder(ABC):
    """Abstract geocoder interface. All providers must implement this.

    ``geocode`` never raises for transport or API failures: they are logged
    and reported as None so the caller can fall back to another provider.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this geocoder provider."""

    @property
    def requires_api_key(self) -> bool:
        """Whether this provider requires an API key to function."""
        return False

    @property
    def is_configured(self) -> bool:
        """Whether this provider has all required configuration (e.g., API keys)."""
        return True

    @abstractmethod
    async def geocode(self, address: GeocodableAddress) -> Coordinates | None:
        """Geocode a single address.

        Args:
            address: Address record to resolve.

        Returns:
            Coordinates, or None if the address could not be geocoded.
        """

    async def _get_json(
        self,
        address: GeocodableAddress,
        url: str,
        params: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> Any | None:
        """Issue one GET request and return the decoded JSON body.

        Transport errors, non-success statuses and undecodable bodies are
        logged against the address and returned as None.
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            logger.warning(f"{self.provider_name} geocoding timed out for address {address.id}")
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"{self.provider_name} geocoding request failed for address {address.id}: "
                f"HTTP {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.error(
                f"{self.provider_name} geocoding failed for address {address.id} "
                f"({address.formatted_address}): {type(e).__name__}"
            )
        except ValueError:
            logger.error(f"{self.provider_name} returned an undecodable body for address {address.id}")
        return None

    def _accept(self, address: GeocodableAddress, lat: Any, lng: Any) -> Coordinates | None:
        """Convert raw provider values to Coordinates, rejecting the (0, 0) sentinel."""
        try:
            coordinates = Coordinates(lat=float(lat), lng=float(lng))
        except (TypeError, ValueError) as e:
            logger.warning(f"{self.provider_name} returned invalid coordinates for address {address.id}: {e}")
            return None
        if coordinates.is_null_island:
            logger.warning(
                f"{self.provider_name} geocoding returned zero coordinates for address {address.id} "
                f"({address.formatted_address})"
            )
            return None
        return coordinates

    def _no_results(self, address: GeocodableAddress) -> None:
        logger.warning(
            f"{self.provider_name} geocoding returned no results for address {address.id} "
            f"({address.formatted_address})"
        )
