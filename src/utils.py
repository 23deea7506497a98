"""
Rhythm Chart Generator - Shared Utilities

Common helpers used across multiple modules to avoid duplication.
"""

import json
from typing import Any, Dict, Sequence


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* into the closed range ``[low, high]``."""
    return max(low, min(high, value))


def lerp(start: float, end: float, t: float) -> float:
    """Linear interpolation: ``start`` at t=0, ``end`` at t=1."""
    return start * (1 - t) + end * t


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean of a non-empty sequence."""
    return sum(values) / len(values)


def parse_json_payload(raw: Any) -> Dict[str, Any]:
    """
    Safely parse a payload that may be a JSON string or already a dict.

    Returns a dict in all cases (empty dict on parse failure or when the
    decoded JSON is not an object).
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}
