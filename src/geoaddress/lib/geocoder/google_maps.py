"""Google Maps Geocoding API provider.

Uses the Google Maps Geocoding API
(https://developers.google.com/maps/documentation/geocoding/)
for address-to-coordinate resolution. Requires an API key.
"""

from typing import Any

from loguru import logger

from geoaddress.lib.geocoder.base import DEFAULT_TIMEOUT, BaseGeocoder, Coordinates, GeocodableAddress

GOOGLE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GoogleMapsGeocoder(BaseGeocoder):
    """Google Maps geocoder provider."""

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        language: str = "",
        region: str = "",
        country: str = "",
    ) -> None:
        super().__init__(timeout)
        self._api_key = api_key
        self._language = language
        self._region = region
        self._country = country

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def geocode(self, address: GeocodableAddress) -> Coordinates | None:
        """Geocode an address using the Google Maps API.

        Args:
            address: Address record to resolve.

        Returns:
            Coordinates or None if no usable match was found.
        """
        if not self._api_key:
            logger.error("Google Maps API key not configured")
            return None

        params = {"address": address.formatted_address, "key": self._api_key}
        if self._language:
            params["language"] = self._language
        if self._region:
            params["region"] = self._region
        if self._country:
            params["components"] = f"country:{self._country}"

        data = await self._get_json(address, GOOGLE_API_URL, params)
        if data is None:
            return None
        return self._parse_response(address, data)

    def _parse_response(self, address: GeocodableAddress, data: Any) -> Coordinates | None:
        """Parse a Google Maps API response into Coordinates."""
        if not isinstance(data, dict):
            self._no_results(address)
            return None

        api_status = data.get("status", "UNKNOWN")
        if api_status == "ZERO_RESULTS":
            self._no_results(address)
            return None
        if api_status != "OK":
            # error_message may echo request details but never the key
            logger.warning(
                f"Google Maps geocoding returned status {api_status} for address {address.id}: "
                f"{data.get('error_message', '')}"
            )
            return None
        if not data.get("results"):
            self._no_results(address)
            return None

        try:
            location = data["results"][0]["geometry"]["location"]
            return self._accept(address, location["lat"], location["lng"])
        except (KeyError, IndexError, TypeError) as e:
            logger.warning(f"Failed to parse Google Maps response for address {address.id}: {e!r}")
            return None
