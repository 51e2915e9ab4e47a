"""Helpers for tolerant reading of loosely-typed remote payloads."""
import math
from typing import Any, Mapping


def safe_number(value: Any, fallback: float = 0) -> float:
    """``value`` as a finite float, else ``fallback``. Accepts "7", "7.5", 7."""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def to_quantity(value: Any, fallback: int = 0) -> int:
    """Stock balance as the integer Shopify expects (fraction truncated)."""
    return int(safe_number(value, fallback))


def first_present(data: Mapping, *keys: str, default: Any = None) -> Any:
    """First value under ``keys`` that is not None."""
    if not isinstance(data, Mapping):
        return default
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def first_truthy(data: Mapping, *keys: str, default: Any = None) -> Any:
    """First value under ``keys`` that is truthy."""
    if not isinstance(data, Mapping):
        return default
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return default


def normalize_text(value: Any) -> str:
    """Query-string style value as a stripped string; lists yield their first item."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    if value is None:
        return ""
    return str(value).strip()
