"""Readers shared by the from_env() constructors: keyword override, then env, then default."""
from __future__ import annotations

import os
from typing import Any, Mapping, Optional

_TRUTHY = ("1", "true", "yes", "on")


def pick(overrides: Mapping[str, Any], attr: str, var: str, default: Any = None) -> Any:
    value = overrides.get(attr)
    if value is not None:
        return value
    return os.environ.get(var, default)


def as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower() if value is not None else ""
    if not text:
        return default
    return text in _TRUTHY


def as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
