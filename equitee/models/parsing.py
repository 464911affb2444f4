"""Coercion helpers used when translating backend records into models."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence


def number_or(value: Any, default: float = 0.0) -> float:
    """Return ``value`` as a float, falling back to ``default`` for missing data."""

    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def optional_number(value: Any) -> float | None:
    """Return ``value`` as a float or ``None`` when it is absent or not numeric."""

    sentinel = math.nan
    number = number_or(value, sentinel)
    return None if math.isnan(number) else number


def text_value(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def optional_str(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def flag(value: Any) -> bool:
    """Interpret truthy backend flags (``True``, ``"true"``, ``1``)."""

    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def listify_strings(value: Any) -> list[str]:
    """Normalise a value into a list of non-empty strings."""

    if isinstance(value, str):
        trimmed = value.strip()
        return [trimmed] if trimmed else []

    if isinstance(value, Sequence):
        result: list[str] = []
        for item in value:
            if isinstance(item, str):
                trimmed = item.strip()
                if trimmed:
                    result.append(trimmed)
        return result

    return []


def mapping_value(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def record_id(data: Mapping[str, Any]) -> str:
    identifier = data.get("id")
    return str(identifier) if identifier is not None else ""


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce an ISO-8601 string or datetime into a timezone-aware UTC datetime."""

    if isinstance(value, datetime):
        stamp = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            stamp = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
