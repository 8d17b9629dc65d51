"""Input validation shared by the order workflows."""

import uuid
from typing import Any, Mapping

from groceazy.services.orders.errors import OrderValidationError

REQUIRED_ADDRESS_FIELDS = ("full_name", "line1", "city", "state", "postal_code", "phone")
OPTIONAL_ADDRESS_FIELDS = ("line2", "landmark", "country")


def parse_uuid(value: Any, message: str = "Invalid ID", field: str = "id") -> uuid.UUID:
    """
    Coerce a UUID or its string form.

    Raises:
        OrderValidationError: If value is not a well-formed UUID
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError) as e:
        raise OrderValidationError(message, **{field: str(value)}) from e


def validate_shipping_address(address: Mapping[str, Any]) -> dict[str, str]:
    """
    Check and normalize a shipping address.

    Args:
        address: Mapping with the required address fields

    Returns:
        New dict holding the stripped required fields plus any optional ones

    Raises:
        OrderValidationError: If any required field is missing or blank
    """
    if not isinstance(address, Mapping):
        raise OrderValidationError("Shipping address is required")

    missing = [
        field
        for field in REQUIRED_ADDRESS_FIELDS
        if not isinstance(address.get(field), str) or not address[field].strip()
    ]
    if missing:
        raise OrderValidationError(
            f"Missing required address fields: {', '.join(missing)}",
            missing_fields=missing,
        )

    normalized = {field: address[field].strip() for field in REQUIRED_ADDRESS_FIELDS}
    for field in OPTIONAL_ADDRESS_FIELDS:
        value = address.get(field)
        if isinstance(value, str) and value.strip():
            normalized[field] = value.strip()
    return normalized
