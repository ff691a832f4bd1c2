"""
In-process result cache with per-entry TTL.
One instance is created per application and handed to the summary service.
"""

import json
import time
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple


def make_cache_key(name: str, params: Dict[str, Any]) -> str:
    """Deterministic key: operation name plus sorted-key JSON of its parameters."""
    return f"{name}:{json.dumps(params, sort_keys=True, separators=(',', ':'), default=str)}"


class ResultCache:
    """Thread-safe TTL cache. ``get`` returns None on a miss."""

    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                value, expires_at = entry
                if self._clock() < expires_at:
                    self._hits += 1
                    return value
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        """Store a value until now + ttl. Concurrent writers: last one wins."""
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def clear(self):
        """Drop every entry and reset statistics"""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for _, expires_at in self._entries.values() if now < expires_at)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        with self._lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        hit_rate = (hits / total * 100) if total > 0 else 0

        return {
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hit_rate, 2),
            "cached_items": len(self),
        }
