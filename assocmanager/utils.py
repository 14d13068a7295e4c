"""
utils.py
Parsing helpers for request payloads and query strings.
"""

import math
from datetime import datetime, timezone


def parse_bool(value):
    """'true'/'false' strings, booleans and 0/1; anything else is None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("true", "1", "oui", "yes"):
            return True
        if v in ("false", "0", "non", "no"):
            return False
    return None


def parse_date(value):
    """ISO date or datetime ('2025-03-10', '2025-03-10T08:00:00Z'). None when invalid."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        # stored as naive UTC
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_number(value):
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN and Infinity are not valid JSON once echoed back
    return number if math.isfinite(number) else None


def parse_int(value):
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else None


def clean_str(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None
