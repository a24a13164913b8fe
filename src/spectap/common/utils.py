"""
spectap Common Utilities

Small helpers shared by the mock server, recorder and replay server.
"""

import copy
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple


def deep_merge(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Recursively merge ``override`` into a copy of ``base``.

    Nested dicts are merged key by key; any other value (lists included)
    replaces the base value. ``None`` values in the override are skipped.
    """
    result = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if value is None:
            continue
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def coerce_number(value: Any, fallback: Optional[float] = None) -> Optional[float]:
    """
    Convert CLI/header input to a number.

    Integral values come back as ``int``. Empty or invalid input returns
    the fallback.
    """
    if value is None or value == '':
        return fallback
    if isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    if number.is_integer():
        return int(number)
    return number


def normalize_headers(headers: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """
    Collapse header pairs into a dict with lower-case names.

    Repeated headers are joined with ", ".
    """
    result: Dict[str, str] = {}
    for key, value in headers:
        name = key.lower()
        if name in result:
            result[name] = f"{result[name]}, {value}"
        else:
            result[name] = value
    return result


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
