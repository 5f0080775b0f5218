"""In-memory LRU cache with TTL expiration.

Bounded process-level cache used for geocoding results and POI summaries.
Keys are independent; asyncio code only touches it between awaits, so no
locking is needed.
"""

import time
from collections import OrderedDict
from typing import Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


class LRUCache(Generic[V]):
    """TTL-aware LRU cache.

    Oldest entries are evicted once ``max_size`` is exceeded; entries older
    than ``ttl_seconds`` are treated as missing.
    """

    def __init__(self, max_size: int = 256, ttl_seconds: float = 86400) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._cache: OrderedDict[Hashable, tuple[float, V]] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_seconds

    def _expired(self, stored_at: float) -> bool:
        return time.monotonic() - stored_at > self._ttl

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._expired(entry[0]):
            self._cache.pop(key)
            return None
        self._cache.move_to_end(key)
        return entry[1]

    def set(self, key: Hashable, value: V) -> None:
        self._cache[key] = (time.monotonic(), value)
        self._cache.move_to_end(key)
        while len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._cache)

    @property
    def max_size(self) -> int:
        return self._max_size
