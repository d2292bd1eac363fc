"""Geocoder factory — builds providers by name from application settings."""

from collections.abc import Callable

from loguru import logger

from geoaddress.core.config import Settings
from geoaddress.lib.geocoder.base import BaseGeocoder, GeocoderConfigurationError
from geoaddress.lib.geocoder.google_maps import GoogleMapsGeocoder
from geoaddress.lib.geocoder.mapbox import MapboxGeocoder
from geoaddress.lib.geocoder.nominatim import NominatimGeocoder

ProviderConstructor = Callable[[Settings], BaseGeocoder]


def _google(settings: Settings) -> BaseGeocoder:
    return GoogleMapsGeocoder(
        api_key=settings.geocoder_google_api_key or "",
        timeout=settings.geocoder_timeout,
        language=settings.geocoder_google_language,
        region=settings.geocoder_google_region,
        country=settings.geocoder_google_country,
    )


def _mapbox(settings: Settings) -> BaseGeocoder:
    return MapboxGeocoder(
        access_token=settings.geocoder_mapbox_access_token or "",
        timeout=settings.geocoder_timeout,
        base_url=settings.geocoder_mapbox_url,
    )


def _nominatim(settings: Settings) -> BaseGeocoder:
    return NominatimGeocoder(
        timeout=settings.geocoder_timeout,
        base_url=settings.geocoder_nominatim_url,
        user_agent=settings.geocoder_nominatim_user_agent,
    )


# Built-in providers
_PROVIDERS: dict[str, ProviderConstructor] = {
    "google": _google,
    "mapbox": _mapbox,
    "nominatim": _nominatim,
}


class GeocoderFactory:
    """Creates geocoder instances from configuration.

    Each factory starts with the built-in providers; ``extend`` registers
    additional ones at runtime.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._providers: dict[str, ProviderConstructor] = dict(_PROVIDERS)

    @property
    def settings(self) -> Settings:
        return self._settings

    def make(self, provider: str | None = None) -> BaseGeocoder:
        """Get a geocoder instance by provider name.

        Args:
            provider: Provider name; defaults to ``settings.geocoder_provider``.

        Returns:
            An instance of the requested geocoder provider.

        Raises:
            GeocoderConfigurationError: If the provider is not registered.
        """
        name = (provider or self._settings.geocoder_provider).strip().lower()
        constructor = self._providers.get(name)
        if constructor is None:
            msg = f"Unsupported geocoding provider: {name!r}. Available: {self.list_providers()}"
            raise GeocoderConfigurationError(msg)
        return constructor(self._settings)

    def extend(self, name: str, constructor: ProviderConstructor) -> None:
        """Register a custom geocoder provider.

        Args:
            name: Short name for the provider.
            constructor: Callable building the provider from settings (a
                BaseGeocoder subclass taking a Settings argument works too).
        """
        name = name.strip().lower()
        if name in self._providers:
            logger.warning(f"Overwriting existing geocoder provider {name!r}")
        self._providers[name] = constructor

    def list_providers(self) -> list[str]:
        """Return the names of all registered geocoder providers, sorted."""
        return sorted(self._providers)


_factory: GeocoderFactory | None = None


def get_geocoder_factory() -> GeocoderFactory:
    """Return the process-wide factory, creating it from settings on first use."""
    global _factory  # noqa: PLW0603
    if _factory is None:
        from geoaddress.core.config import get_settings

        _factory = GeocoderFactory(get_settings())
    return _factory


def set_geocoder_factory(factory: GeocoderFactory | None) -> None:
    """Replace (or reset, with None) the process-wide factory."""
    global _factory  # noqa: PLW0603
    _factory = factory
