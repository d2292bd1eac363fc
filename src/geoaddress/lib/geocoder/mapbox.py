"""Mapbox Geocoding API provider.

Uses the Mapbox places endpoint
(https://docs.mapbox.com/api/search/geocoding/)
for address-to-coordinate resolution. Requires an access token.
"""

from typing import Any
from urllib.parse import quote

from loguru import logger

from geoaddress.lib.geocoder.base import DEFAULT_TIMEOUT, BaseGeocoder, Coordinates, GeocodableAddress

MAPBOX_API_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"


class MapboxGeocoder(BaseGeocoder):
    """Mapbox geocoder provider."""

    def __init__(
        self,
        access_token: str,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = MAPBOX_API_URL,
    ) -> None:
        super().__init__(timeout)
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")

    @property
    def provider_name(self) -> str:
        return "mapbox"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._access_token)

    async def geocode(self, address: GeocodableAddress) -> Coordinates | None:
        """Geocode an address using the Mapbox API.

        Args:
            address: Address record to resolve.

        Returns:
            Coordinates or None if no usable match was found.
        """
        if not self._access_token:
            logger.error("Mapbox access token not configured")
            return None

        url = f"{self._base_url}/{quote(address.formatted_address, safe='')}.json"
        params = {"access_token": self._access_token, "limit": 1}

        data = await self._get_json(address, url, params)
        if data is None:
            return None
        return self._parse_response(address, data)

    def _parse_response(self, address: GeocodableAddress, data: Any) -> Coordinates | None:
        """Parse a Mapbox API response into Coordinates."""
        features = data.get("features") if isinstance(data, dict) else None
        if not features:
            self._no_results(address)
            return None

        try:
            lng, lat = features[0]["center"][:2]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse Mapbox response for address {address.id}: {e!r}")
            return None
        return self._accept(address, lat, lng)
