"""Unit tests for Mapbox geocoder provider."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from geoaddress.lib.geocoder.mapbox import MAPBOX_API_URL, MapboxGeocoder
from geoaddress.models.address import Address


def _address() -> Address:
    return Address(
        id=uuid.uuid4(),
        street="Rua Augusta",
        number="500",
        city="Sao Paulo",
        state="SP",
        country_code="BR",
    )


def _response(data: object) -> MagicMock:
    mock_response = MagicMock()
    mock_response.json.return_value = data
    mock_response.raise_for_status = MagicMock()
    return mock_response


class TestMapboxResponseParsing:
    """Tests for Mapbox response parsing."""

    def setup_method(self) -> None:
        self.geocoder = MapboxGeocoder(access_token="token")
        self.address = _address()

    def test_center_is_longitude_then_latitude(self) -> None:
        data = {"features": [{"center": [-46.65, -23.55]}]}
        result = self.geocoder._parse_response(self.address, data)
        assert result is not None
        assert result.lat == pytest.approx(-23.55)
        assert result.lng == pytest.approx(-46.65)

    def test_no_features(self) -> None:
        assert self.geocoder._parse_response(self.address, {"features": []}) is None

    def test_missing_center(self) -> None:
        assert self.geocoder._parse_response(self.address, {"features": [{"place_name": "x"}]}) is None

    def test_zero_coordinates_rejected(self) -> None:
        assert self.geocoder._parse_response(self.address, {"features": [{"center": [0, 0]}]}) is None


class TestMapboxGeocoderRequests:
    """Tests for MapboxGeocoder HTTP behaviour."""

    async def test_url_embeds_encoded_address(self) -> None:
        geocoder = MapboxGeocoder(access_token="token")
        address = _address()
        data = {"features": [{"center": [-46.65, -23.55]}]}

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(data)) as mock_get:
            result = await geocoder.geocode(address)

        assert result is not None
        url = mock_get.call_args.args[0]
        assert url.startswith(f"{MAPBOX_API_URL}/")
        assert url.endswith(".json")
        assert " " not in url
        assert "Rua%20Augusta" in url
        assert mock_get.call_args.kwargs["params"] == {"access_token": "token", "limit": 1}

    async def test_missing_token_makes_no_request(self) -> None:
        geocoder = MapboxGeocoder(access_token="")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            assert await geocoder.geocode(_address()) is None
        mock_get.assert_not_called()

    async def test_transport_error_returns_none(self) -> None:
        geocoder = MapboxGeocoder(access_token="token")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = httpx.ConnectError("refused")
            assert await geocoder.geocode(_address()) is None

    async def test_custom_base_url(self) -> None:
        geocoder = MapboxGeocoder(access_token="token", base_url="http://mapbox.local/places/")
        data = {"features": []}
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(data)) as mock_get:
            await geocoder.geocode(_address())
        assert mock_get.call_args.args[0].startswith("http://mapbox.local/places/Rua")


class TestMapboxProperties:
    """Tests for MapboxGeocoder base properties."""

    def test_provider_name(self) -> None:
        assert MapboxGeocoder(access_token="t").provider_name == "mapbox"

    def test_requires_api_key(self) -> None:
        assert MapboxGeocoder(access_token="t").requires_api_key is True

    def test_is_configured(self) -> None:
        assert MapboxGeocoder(access_token="t").is_configured is True
        assert MapboxGeocoder(access_token="").is_configured is False
