from __future__ import annotations

import uuid
from typing import Any

from namemc.errors import InvalidArgument


def normalize_unique_id(value: Any) -> uuid.UUID:
    """Profile keys are used verbatim; strings are parsed into a UUID."""
    if value is None:
        raise InvalidArgument("unique_id cannot be None")
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"unique_id must be a UUID or UUID string, got {value!r}")
    try:
        return uuid.UUID(value.strip())
    except ValueError as exc:
        raise InvalidArgument(f"Malformed unique_id: {value!r}") from exc


def normalize_address(value: Any) -> str:
    """Server addresses are case-insensitive: 'Example.com' == 'example.com'."""
    if value is None:
        raise InvalidArgument("address cannot be None")
    if not isinstance(value, str):
        raise InvalidArgument(f"address must be a string, got {type(value).__name__}")
    address = value.strip().lower()
    if not address:
        raise InvalidArgument("address cannot be empty")
    return address
