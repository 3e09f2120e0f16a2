from __future__ import annotations

import time
from collections import OrderedDict
from typing import Generic, Optional, Protocol, Tuple, TypeVar

V = TypeVar("V")


class ActivityCache(Protocol[V]):
    def get(self, key: str) -> Optional[V]: ...

    def set(self, key: str, value: V) -> None: ...


class MemoryCache(Generic[V]):
    """In-process key/value cache.

    With no ``max_entries`` and no ``ttl_seconds`` nothing is ever evicted,
    which only suits short-lived single-run processes. Long-running services
    should set a capacity (least recently used entries go first), a time to
    live, or both.
    """

    def __init__(self, max_entries: Optional[int] = None, ttl_seconds: Optional[float] = None) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._data: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Optional[V]:
        entry = self._data.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.ttl_seconds is not None and time.monotonic() - stored_at > self.ttl_seconds:
            del self._data[key]
            return None
        self._data.move_to_end(key)
        return value

    def set(self, key: str, value: V) -> None:
        self._data[key] = (time.monotonic(), value)
        self._data.move_to_end(key)
        if self.max_entries is not None:
            while len(self._data) > self.max_entries:
                self._data.popitem(last=False)

    def clear(self) -> None:
        self._data.clear()


# process-wide default used by fetch_activity when no cache is injected
activity_cache: MemoryCache = MemoryCache()
