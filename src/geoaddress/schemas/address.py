"""Pydantic v2 schemas for address writes and reads."""

import uuid
from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator

# Attributes of AddressCreate/AddressUpdate that are not columns.
COORDINATE_FIELDS = ("latitude", "longitude")

# Columns that reject NULL; an explicit None for them is dropped on create.
_NON_NULLABLE = ("street", "city", "state", "country_code", "is_primary", "geocoding_enabled")


class _AddressWrite(BaseModel):
    """Fields shared by create and update requests."""

    model_config = {"extra": "forbid"}

    type: str | None = Field(default=None, max_length=50, description="home, work, billing, delivery, ...")
    nickname: str | None = Field(default=None, max_length=100)
    is_primary: bool | None = None
    geocoding_enabled: bool | None = Field(
        default=None,
        description="False for billing/virtual addresses: coordinates are never stored",
    )

    street: str | None = Field(default=None, min_length=1, max_length=255)
    number: str | None = Field(default=None, max_length=20)
    complement: str | None = Field(default=None, max_length=100)
    neighbourhood: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, min_length=1, max_length=100)
    state: str | None = Field(default=None, min_length=1, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    country_code: str | None = Field(default=None, description="ISO 3166-1 alpha-2")
    reference_point: str | None = None

    customer_name: str | None = Field(default=None, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=50)
    customer_country_code_phone: str | None = Field(default=None, max_length=10)
    customer_document: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    metadata: dict[str, Any] | None = None

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    @field_validator("country_code")
    @classmethod
    def validate_country_code(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().upper()
        if len(v) != 2 or not v.isalpha():
            msg = "country_code must be a two-letter ISO 3166-1 code"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_coordinate_pair(self) -> Self:
        if (self.latitude is None) != (self.longitude is None):
            msg = "latitude and longitude must be provided together"
            raise ValueError(msg)
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def column_values(self) -> dict[str, Any]:
        """Explicitly set fields mapped to Address attribute names, minus coordinates."""
        values = self.model_dump(exclude_unset=True, exclude=set(COORDINATE_FIELDS))
        values = {k: v for k, v in values.items() if v is not None or k not in _NON_NULLABLE}
        if "metadata" in values:
            values["extra_metadata"] = values.pop("metadata")
        return values


class AddressCreate(_AddressWrite):
    """Request to create an address. Street, city and state are required."""

    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)


class AddressUpdate(_AddressWrite):
    """Partial update; only explicitly set fields are written."""

    @model_validator(mode="after")
    def validate_required_not_cleared(self) -> Self:
        cleared = [name for name in _NON_NULLABLE if name in self.model_fields_set and getattr(self, name) is None]
        if cleared:
            msg = f"fields cannot be set to null: {', '.join(cleared)}"
            raise ValueError(msg)
        return self


class AddressResponse(BaseModel):
    """Response schema for an address."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    owner_type: str
    owner_id: str
    type: str | None = None
    nickname: str | None = None
    is_primary: bool
    geocoding_enabled: bool
    street: str
    number: str | None = None
    complement: str | None = None
    neighbourhood: str | None = None
    city: str
    state: str
    postal_code: str | None = None
    country_code: str
    reference_point: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_country_code_phone: str | None = None
    customer_document: str | None = None
    notes: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="extra_metadata")
    formatted_address: str
    latitude: float | None = None
    longitude: float | None = None
    geocoded_at: datetime | None = None
    geocoding_failed_at: datetime | None = None
    geocoding_error: str | None = None
