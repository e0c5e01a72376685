"""Store lookup memo, scoped to a single aggregation call.

Architectures often contain many resources of the same type; the memo avoids
repeated store round-trips for the same lookup key.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional, Tuple

# Bump when the key schema changes.
CACHE_KEY_VERSION = "v1"

CacheKey = Tuple[str, str, str, str, str, str]


def _norm(s: Any) -> str:
    return (s or "").strip()


def build_cache_key(
    provider: str,
    resource_type: str,
    region: Optional[str],
    variant: Optional[str] = None,
    variant_subtype: Optional[str] = None,
) -> CacheKey:
    return (
        CACHE_KEY_VERSION,
        _norm(provider).lower(),
        _norm(resource_type),
        _norm(region),
        _norm(variant),
        _norm(variant_subtype),
    )


class LookupCache:
    """Thread-safe memo of store results; ``None`` results are cached too."""

    _MISS = object()

    def __init__(self) -> None:
        self._data: Dict[CacheKey, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Any:
        with self._lock:
            return self._data.get(key, self._MISS)

    def set(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def is_miss(self, value: Any) -> bool:
        return value is self._MISS

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
