"""Process-local TTL cache for read-mostly lookups such as public site settings."""

import threading
import time
from typing import Any, Optional

_lock = threading.Lock()
_entries: dict[str, tuple[Any, float]] = {}


def get_cached(key: str) -> Optional[Any]:
    with _lock:
        hit = _entries.get(key)
        if hit is None:
            return None
        value, expires_at = hit
        if expires_at <= time.monotonic():
            del _entries[key]
            return None
        return value


def set_cached(key: str, value: Any, ttl_seconds: int = 60) -> None:
    with _lock:
        _entries[key] = (value, time.monotonic() + ttl_seconds)


def invalidate(prefix: str = "") -> int:
    """Drop every key starting with ``prefix``; an empty prefix clears the cache."""
    with _lock:
        stale = [key for key in _entries if key.startswith(prefix)]
        for key in stale:
            del _entries[key]
    return len(stale)
