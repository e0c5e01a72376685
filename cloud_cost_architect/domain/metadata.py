"""Tolerant readers for the open-ended resource metadata map.

Metadata arrives from JSON, YAML or the domain graph, so numbers may be ints,
floats or numeric strings. Booleans are never treated as numbers.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional


def _lookup(metadata: Optional[Mapping[str, Any]], key: str) -> Any:
    if not metadata:
        return None
    return metadata.get(key)


def get_float(metadata: Optional[Mapping[str, Any]], key: str, default: Optional[float] = None) -> Optional[float]:
    v = _lookup(metadata, key)
    if v is None or isinstance(v, bool):
        return default
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str) and v.strip():
        try:
            return float(v.strip())
        except ValueError:
            return default
    return default


def get_int(metadata: Optional[Mapping[str, Any]], key: str, default: Optional[int] = None) -> Optional[int]:
    f = get_float(metadata, key)
    if f is None:
        return default
    return int(f)


def get_str(metadata: Optional[Mapping[str, Any]], key: str, default: Optional[str] = None) -> Optional[str]:
    v = _lookup(metadata, key)
    if v is None:
        return default
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        # "cpu": 256 and "cpu": "256" mean the same thing
        return str(int(v)) if float(v).is_integer() else str(v)
    s = str(v).strip()
    return s or default


def get_bool(metadata: Optional[Mapping[str, Any]], key: str, default: bool = False) -> bool:
    v = _lookup(metadata, key)
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    if s in ("true", "yes", "1", "y", "on"):
        return True
    if s in ("false", "no", "0", "n", "off", ""):
        return False
    return default


def first_present(metadata: Optional[Mapping[str, Any]], *keys: str) -> Optional[str]:
    """Return the first key that carries a non-empty value."""
    for k in keys:
        v = _lookup(metadata, k)
        if v is not None and v != "":
            return k
    return None
