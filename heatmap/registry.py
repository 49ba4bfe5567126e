from __future__ import annotations

import threading
from typing import Dict, Optional, Set


class RetrievalRegistry:
    """
    Per-layer record of tile paths being produced (in flight) and of paths
    whose production failed (absent).

    All membership changes happen under one lock; try_begin() is the atomic
    check-then-mark that admits at most one producer per path.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: Set[str] = set()
        self._absent: Set[str] = set()

    # -------- in-flight --------

    def try_begin(self, path: str) -> bool:
        """Mark `path` in flight unless it already is, or is known absent."""
        with self._lock:
            if path in self._in_flight or path in self._absent:
                return False
            self._in_flight.add(path)
            return True

    def finish(self, path: str, absent: Optional[bool] = None) -> None:
        """
        Clear the in-flight mark. `absent=True` records a failure and
        `absent=False` a success (clearing any earlier failure), in the same
        critical section so no other producer slips in between.
        """
        with self._lock:
            self._in_flight.discard(path)
            if absent is True:
                self._absent.add(path)
            elif absent is False:
                self._absent.discard(path)

    def in_flight(self, path: str) -> bool:
        with self._lock:
            return path in self._in_flight

    # -------- absent resources --------

    def is_absent(self, path: str) -> bool:
        with self._lock:
            return path in self._absent

    def mark_absent(self, path: str) -> None:
        with self._lock:
            self._absent.add(path)

    def unmark_absent(self, path: str) -> None:
        with self._lock:
            self._absent.discard(path)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"in_flight": len(self._in_flight), "absent": len(self._absent)}
