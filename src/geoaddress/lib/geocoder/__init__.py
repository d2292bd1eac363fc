"""Geocoder library — pluggable address geocoding providers.

Public API:
    - format_address: Display form of an address
    - build_search_query: Compact query for OSM-style search engines
    - BaseGeocoder: Abstract provider interface
    - Coordinates: Resolved latitude/longitude pair
    - GeocoderConfigurationError: Unknown or unbuildable provider
    - GoogleMapsGeocoder: Google Maps provider
    - MapboxGeocoder: Mapbox provider
    - NominatimGeocoder: OpenStreetMap Nominatim provider
    - GeocoderFactory / get_geocoder_factory: Provider factory/registry
"""

from geoaddress.lib.geocoder.address import build_search_query, format_address
from geoaddress.lib.geocoder.base import (
    BaseGeocoder,
    Coordinates,
    GeocodableAddress,
    GeocoderConfigurationError,
)
from geoaddress.lib.geocoder.factory import GeocoderFactory, get_geocoder_factory, set_geocoder_factory
from geoaddress.lib.geocoder.google_maps import GoogleMapsGeocoder
from geoaddress.lib.geocoder.mapbox import MapboxGeocoder
from geoaddress.lib.geocoder.nominatim import NominatimGeocoder

__all__ = [
    "BaseGeocoder",
    "Coordinates",
    "GeocodableAddress",
    "GeocoderConfigurationError",
    "GeocoderFactory",
    "GoogleMapsGeocoder",
    "MapboxGeocoder",
    "NominatimGeocoder",
    "build_search_query",
    "format_address",
    "get_geocoder_factory",
    "set_geocoder_factory",
]
