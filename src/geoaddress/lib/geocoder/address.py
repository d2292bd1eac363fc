"""Address string builders used for display and provider queries."""

POSTAL_CODE_LABEL = "CEP"


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def format_address(
    *,
    street: str | None = None,
    number: str | None = None,
    complement: str | None = None,
    neighbourhood: str | None = None,
    city: str | None = None,
    state: str | None = None,
    postal_code: str | None = None,
    country_code: str | None = None,
) -> str:
    """Build the display form of an address.

    Parts appear in a fixed order and empty parts are skipped:
    "street, number", complement, neighbourhood, "city - state",
    "CEP postal_code", country code.

    Example:
        >>> format_address(street="Avenida Paulista", number="1578", city="Sao Paulo", state="SP")
        'Avenida Paulista, 1578, Sao Paulo - SP'
    """
    street, number = _clean(street), _clean(number)
    city, state = _clean(city), _clean(state)
    postal_code = _clean(postal_code)

    parts: list[str] = []
    if street:
        parts.append(f"{street}, {number}" if number else street)
    parts.append(_clean(complement))
    parts.append(_clean(neighbourhood))
    if city:
        parts.append(f"{city} - {state}" if state else city)
    if postal_code:
        parts.append(f"{POSTAL_CODE_LABEL} {postal_code}")
    parts.append(_clean(country_code))

    return ", ".join(part for part in parts if part)


def build_search_query(
    *,
    street: str | None = None,
    number: str | None = None,
    city: str | None = None,
    state: str | None = None,
    postal_code: str | None = None,
) -> str:
    """Build a compact free-text query for OSM-style search engines.

    Complement, neighbourhood and the postal-code label are left out because
    they tend to make Nominatim miss otherwise exact matches; the country is
    passed separately as a filter.
    """
    street, number = _clean(street), _clean(number)
    head = f"{street} {number}".strip()
    parts = [head, _clean(city), _clean(state), _clean(postal_code)]
    return ", ".join(part for part in parts if part)
