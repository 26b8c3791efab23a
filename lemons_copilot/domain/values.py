from __future__ import annotations

import re
from typing import Any

_LEADING_NUMBER = re.compile(r"(\d+(?:\.\d+)?)")
_NUMERIC = re.compile(r"^-?\d+(?:\.\d+)?$")


def to_number(value: Any) -> float | None:
    """Lenient numeric read used for record fields; returns None when not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return parse_number(value)
    except ValueError:
        return None


def parse_number(value: Any) -> float:
    """Strict numeric parse for operation arguments. Accepts "$1,200.50"; raises ValueError otherwise."""
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value or "").strip().lstrip("$").replace(",", "").strip()
    if not _NUMERIC.match(text):
        raise ValueError(f"Not a number: {value!r}")
    return float(text)


def parse_delivery_days(value: Any) -> float | None:
    """Leading number of a delivery text, e.g. "3 days" -> 3."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.search(str(value))
    return float(match.group(1)) if match else None


def split_list(value: Any) -> list[str]:
    """Accept a native list or a comma/newline separated string; trims and drops empties."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value if v is not None]
    else:
        items = re.split(r"[,\n]", str(value))
    return [item.strip() for item in items if item and item.strip()]
