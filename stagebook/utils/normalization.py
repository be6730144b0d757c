"""Helpers that coerce loosely-typed form/JSON input into artist field values."""

import math
import re
from typing import Any

_NON_NUMERIC = re.compile(r"[^0-9.]")


def parse_fee(value: Any) -> int:
    """
    Convert a fee given as a number or free-form string into whole units.

    Every character other than digits and "." is stripped before parsing,
    so "1,200.50" and "₹1,200.50" both become 1200. The result is floored
    and never negative; anything unparsable becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0

    if isinstance(value, int):
        # Arbitrarily large ints would overflow float()
        return max(0, value)
    if isinstance(value, float):
        number = value
    else:
        cleaned = _NON_NUMERIC.sub("", str(value))
        try:
            number = float(cleaned) if cleaned else 0.0
        except (ValueError, OverflowError):
            return 0

    if math.isnan(number) or math.isinf(number):
        return 0
    return max(0, math.floor(number))


def normalize_languages(value: Any) -> list[str]:
    """Return languages as a list of non-empty strings.

    Accepts a comma-separated string or a list; non-string items are dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [item for item in value if isinstance(item, str)]
    else:
        return []
    return [item.strip() for item in items if item.strip()]


def clean_text(value: Any) -> str:
    """Strip a text field; None and non-strings become ""."""
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.strip()
