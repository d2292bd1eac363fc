"""OpenStreetMap Nominatim geocoder provider.

Uses the Nominatim API (https://nominatim.org/release-docs/latest/api/Search/)
for address-to-coordinate resolution. Free but rate-limited to 1 req/sec;
production deployments should point ``base_url`` at their own instance.
"""

from typing import Any

from loguru import logger

from geoaddress.lib.geocoder.address import build_search_query
from geoaddress.lib.geocoder.base import DEFAULT_TIMEOUT, BaseGeocoder, Coordinates, GeocodableAddress

NOMINATIM_API_URL = "https://nominatim.openstreetmap.org"
DEFAULT_USER_AGENT = "geoaddress/0.1"


class NominatimGeocoder(BaseGeocoder):
    """OpenStreetMap Nominatim geocoder provider."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = NOMINATIM_API_URL,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        super().__init__(timeout)
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent

    @property
    def provider_name(self) -> str:
        return "nominatim"

    async def geocode(self, address: GeocodableAddress) -> Coordinates | None:
        """Geocode an address using the Nominatim search endpoint.

        Args:
            address: Address record to resolve.

        Returns:
            Coordinates or None if no usable match was found.
        """
        params: dict[str, str | int] = {
            "q": build_search_query(
                street=address.street,
                number=address.number,
                city=address.city,
                state=address.state,
                postal_code=address.postal_code,
            ),
            "format": "json",
            "limit": 1,
        }
        if address.country_code:
            params["countrycodes"] = address.country_code.lower()

        headers = {"User-Agent": self._user_agent}

        data = await self._get_json(address, f"{self._base_url}/search", params, headers)
        if data is None:
            return None
        return self._parse_response(address, data)

    def _parse_response(self, address: GeocodableAddress, data: Any) -> Coordinates | None:
        """Parse a Nominatim response (a list of matches) into Coordinates."""
        if not isinstance(data, list) or not data:
            self._no_results(address)
            return None

        best = data[0]
        try:
            return self._accept(address, best["lat"], best["lon"])
        except (KeyError, TypeError) as e:
            logger.warning(f"Failed to parse Nominatim response for address {address.id}: {e!r}")
            return None
