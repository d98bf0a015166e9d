from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from sysupdate.domain.ports import CachePort


class MemoryCache(CachePort):
    """In-process key-value cache with per-entry TTLs."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_s: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + float(ttl_s), value)

    def forget(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
