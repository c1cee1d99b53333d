# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application: UUID normalization, lenient
# number parsing for form/JSON values, and timestamp helpers.
# =============================================================================

import math
from datetime import datetime, timezone
from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Args:
        value: UUID as string or UUID object

    Returns:
        String representation of the UUID

    Example:
        product_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        product_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Number Utilities
# =============================================================================

def to_number(value: Any, default: float = 0.0) -> float:
    """
    Convert a database/form value to a finite float.

    Numeric columns come back from PostgREST as numbers or strings
    ("1200.00"); blanks, None and non-finite values give `default`.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def safe_int(value: Any) -> int:
    """Floor a value to a non-negative int (cart quantities, stock)."""
    number = to_number(value)
    return max(0, math.floor(number))


def parse_optional_number(value: Any) -> float | None:
    """
    Parse a bulk-edit style numeric field.

    Returns None for blank input ("leave unchanged"). Raises ValueError
    for non-numeric or non-finite text.
    """
    if value is None:
        return None
    text = str(value).strip()
    if text == "":
        return None
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {text}")
    return number


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string for timestamp columns."""
    return utc_now().isoformat()


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a Postgres timestamptz string into an aware datetime.

    Naive values are assumed UTC. Unparseable input gives None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
