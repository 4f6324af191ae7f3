"""
Value Coercion Helpers

Lenient parsers shared by the normalizer and the domain records. None of the
parsers raise on malformed input; they return a fallback instead.
"""

import math
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime (millisecond precision)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def parse_amount(value: Any, fallback: Decimal | int = 0) -> Decimal:
    """Parse a money amount.

    Args:
        value: int, float, Decimal or numeric string
        fallback: Returned when the value is absent or not a finite number

    Returns:
        Decimal amount
    """
    fallback = Decimal(str(fallback))

    if value is None or isinstance(value, bool):
        return fallback

    if isinstance(value, Decimal):
        return value if value.is_finite() else fallback

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            return fallback
        return Decimal(str(value))

    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return fallback
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return fallback
        return parsed if parsed.is_finite() else fallback

    return fallback


def parse_int(value: Any, fallback: int) -> int:
    amount = parse_amount(value, fallback)
    try:
        return int(amount)
    except (ValueError, OverflowError):
        return fallback


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp into an aware UTC datetime.

    Accepts datetime/date objects and ISO-8601 strings (date-only, naive,
    offset or ``Z`` suffixed). Naive values are taken as UTC.

    Returns:
        datetime truncated to milliseconds, or None when unparsable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    else:
        parsed = parsed.astimezone(timezone.utc)

    return parsed.replace(microsecond=(parsed.microsecond // 1000) * 1000)


def format_timestamp(value: datetime | None) -> str | None:
    """Canonical ISO form, e.g. ``2024-01-10T00:00:00.000Z``."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clean_string(value: Any) -> str | None:
    """Return a stripped string, or None for blanks and non-strings."""
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def clean_string_list(value: Any) -> list[str] | None:
    """Keep non-empty strings from a list; None when the input is not a list."""
    if not isinstance(value, (list, tuple)):
        return None
    return [item for item in value if isinstance(item, str) and item]


def round_money(value: Decimal, places: str = "0.01") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)
