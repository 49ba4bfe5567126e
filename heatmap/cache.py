from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from common.logging_setup import get_logger


log = get_logger("heatmap.cache")

DEFAULT_CAPACITY_BYTES = 256 * 1024 * 1024


class MemoryResourceCache:
    """
    In-memory LRU cache for produced tile textures, bounded by total size.

        put(path, resource, size_bytes)  -> stores, evicting least recently used
        get(path)                        -> resource or None (refreshes recency)

    A single resource larger than the capacity is not stored.
    """

    def __init__(self, capacity_bytes: int = DEFAULT_CAPACITY_BYTES) -> None:
        if capacity_bytes <= 0:
            raise ValueError("capacity_bytes must be > 0")
        self.capacity_bytes = int(capacity_bytes)
        self._entries: "OrderedDict[str, Tuple[Any, int]]" = OrderedDict()
        self._used = 0
        self._lock = threading.Lock()

    # -------- public API --------

    def put(self, path: str, resource: Any, size_bytes: int) -> bool:
        size_bytes = int(size_bytes)
        if size_bytes < 0:
            raise ValueError("size_bytes must be >= 0")
        if size_bytes > self.capacity_bytes:
            log.warning(
                "Resource larger than cache capacity; not cached",
                extra={"extra": {"path": path, "size": size_bytes}},
            )
            return False
        with self._lock:
            old = self._entries.pop(path, None)
            if old is not None:
                self._used -= old[1]
            self._entries[path] = (resource, size_bytes)
            self._used += size_bytes
            self._evict()
        return True

    def get(self, path: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                return None
            self._entries.move_to_end(path)
            return entry[0]

    def remove(self, path: str) -> None:
        with self._lock:
            entry = self._entries.pop(path, None)
            if entry is not None:
                self._used -= entry[1]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._used = 0

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "used_bytes": self._used,
                "capacity_bytes": self.capacity_bytes,
            }

    # -------- internals --------

    def _evict(self) -> None:
        # caller holds the lock
        while self._used > self.capacity_bytes and self._entries:
            path, (_, size) = self._entries.popitem(last=False)
            self._used -= size
            log.debug("Evicted cached tile", extra={"extra": {"path": path, "size": size}})
