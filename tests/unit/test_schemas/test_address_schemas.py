"""Unit tests for address request and response schemas."""

import uuid
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from geoaddress.models.address import Address
from geoaddress.schemas.address import AddressCreate, AddressResponse, AddressUpdate


class TestAddressCreate:
    """Tests for AddressCreate validation."""

    def test_minimal(self) -> None:
        data = AddressCreate(street="Rua A", city="Recife", state="PE")
        assert data.has_coordinates is False
        assert data.column_values() == {"street": "Rua A", "city": "Recife", "state": "PE"}

    def test_required_fields(self) -> None:
        with pytest.raises(ValidationError) as exc:
            AddressCreate(street="Rua A")
        missing = {error["loc"][0] for error in exc.value.errors()}
        assert missing == {"city", "state"}

    def test_country_code_normalized(self) -> None:
        assert AddressCreate(street="Rua A", city="Recife", state="PE", country_code="br").country_code == "BR"

    @pytest.mark.parametrize("code", ["BRA", "B", "12"])
    def test_country_code_invalid(self, code: str) -> None:
        with pytest.raises(ValidationError, match="country_code"):
            AddressCreate(street="Rua A", city="Recife", state="PE", country_code=code)

    def test_coordinates_kept_out_of_columns(self) -> None:
        data = AddressCreate(street="Rua A", city="Recife", state="PE", latitude=-8.05, longitude=-34.9)
        assert data.has_coordinates is True
        assert "latitude" not in data.column_values()
        assert "longitude" not in data.column_values()

    def test_partial_coordinate_pair_rejected(self) -> None:
        with pytest.raises(ValidationError, match="provided together"):
            AddressCreate(street="Rua A", city="Recife", state="PE", latitude=-8.05)

    @pytest.mark.parametrize(("lat", "lng"), [(91, 0), (-90.5, 0), (0, 181), (0, -180.1)])
    def test_coordinates_out_of_range(self, lat: float, lng: float) -> None:
        with pytest.raises(ValidationError):
            AddressCreate(street="Rua A", city="Recife", state="PE", latitude=lat, longitude=lng)

    def test_metadata_renamed_for_column(self) -> None:
        data = AddressCreate(street="Rua A", city="Recife", state="PE", metadata={"floor": 3})
        assert data.column_values()["extra_metadata"] == {"floor": 3}
        assert "metadata" not in data.column_values()

    def test_explicit_none_for_non_nullable_dropped(self) -> None:
        data = AddressCreate(street="Rua A", city="Recife", state="PE", is_primary=None, country_code=None)
        values = data.column_values()
        assert "is_primary" not in values
        assert "country_code" not in values

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AddressCreate(street="Rua A", city="Recife", state="PE", zipcode="123")


class TestAddressUpdate:
    """Tests for AddressUpdate validation."""

    def test_only_set_fields(self) -> None:
        assert AddressUpdate(nickname="Home").column_values() == {"nickname": "Home"}

    def test_nullable_field_can_be_cleared(self) -> None:
        assert AddressUpdate(complement=None).column_values() == {"complement": None}

    def test_required_field_cannot_be_cleared(self) -> None:
        with pytest.raises(ValidationError, match="cannot be set to null: street"):
            AddressUpdate(street=None)

    def test_empty_update(self) -> None:
        data = AddressUpdate()
        assert data.column_values() == {}
        assert data.has_coordinates is False


class TestAddressResponse:
    """Tests for AddressResponse serialization from the model."""

    def test_from_model(self) -> None:
        address = Address(
            id=uuid.uuid4(),
            owner_type="customer",
            owner_id="42",
            is_primary=True,
            geocoding_enabled=True,
            street="Avenida Paulista",
            number="1578",
            city="Sao Paulo",
            state="SP",
            postal_code="01310-200",
            country_code="BR",
            extra_metadata={"gate": "B"},
            latitude=-23.56,
            longitude=-46.65,
            geocoded_at=datetime(2026, 10, 18, tzinfo=UTC),
        )
        response = AddressResponse.model_validate(address)

        assert response.owner_id == "42"
        assert response.metadata == {"gate": "B"}
        assert response.formatted_address == "Avenida Paulista, 1578, Sao Paulo - SP, CEP 01310-200, BR"
        assert response.latitude == -23.56
        assert "metadata" in response.model_dump()
