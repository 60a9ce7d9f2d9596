"""Helpers for healing loosely-typed config payloads (YAML, JSON, CLI flags)."""

from __future__ import annotations

import math
from typing import Any, Mapping

from pydantic.alias_generators import to_camel

__all__ = ["finite_number", "js_round", "pick"]


def js_round(value: float) -> int:
    """Round half up (``2.5 -> 3``, ``-2.5 -> -2``)."""
    return math.floor(value + 0.5)


def finite_number(value: Any, default: float) -> float:
    """``float(value)`` when that is finite, else *default*."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def pick(data: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Look *name* up as snake_case first, then camelCase."""
    if name in data:
        return data[name]
    return data.get(to_camel(name), default)
