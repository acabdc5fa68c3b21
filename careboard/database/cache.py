"""
In-memory cache with TTL in front of the local record mirror
Reduces file I/O on every board render
"""
import time
from typing import Any, Callable, Dict, Optional, Tuple
from threading import Lock

from careboard.core.config import CACHE_TTL_SECONDS


class TTLCache:
    """
    Thread-safe in-memory cache with TTL (Time To Live)
    """
    def __init__(self, ttl_seconds: int = CACHE_TTL_SECONDS):
        self.ttl = ttl_seconds
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get value if present and not expired"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any):
        with self._lock:
            self._entries[key] = (value, time.monotonic() + self.ttl)

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value, calling loader and caching its result on a miss"""
        value = self.get(key)
        if value is None:
            value = loader()
            if value is not None:
                self.set(key, value)
        return value

    def invalidate(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()


# One cache for the local patient mirror
_records_cache = TTLCache()


def get_records_cache() -> TTLCache:
    return _records_cache
