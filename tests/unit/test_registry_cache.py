"""
Unit tests for the retrieval registry and the in-memory resource cache
"""

import os
import sys
import threading

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from heatmap.cache import MemoryResourceCache
from heatmap.registry import RetrievalRegistry


class TestRetrievalRegistry:
    def test_try_begin_admits_once(self):
        reg = RetrievalRegistry()
        assert reg.try_begin("a") is True
        assert reg.try_begin("a") is False
        assert reg.in_flight("a")
        reg.finish("a")
        assert not reg.in_flight("a")
        assert reg.try_begin("a") is True

    def test_absent_blocks_begin(self):
        reg = RetrievalRegistry()
        reg.mark_absent("a")
        assert reg.is_absent("a")
        assert reg.try_begin("a") is False
        reg.unmark_absent("a")
        assert reg.try_begin("a") is True

    def test_finish_records_outcome(self):
        reg = RetrievalRegistry()
        reg.try_begin("a")
        reg.finish("a", absent=True)
        assert reg.is_absent("a") and not reg.in_flight("a")

        reg.unmark_absent("a")
        reg.try_begin("a")
        reg.mark_absent("a")
        reg.finish("a", absent=False)
        assert not reg.is_absent("a")

    def test_concurrent_begin_single_winner(self):
        reg = RetrievalRegistry()
        barrier = threading.Barrier(16)
        wins = []

        def worker():
            barrier.wait()
            if reg.try_begin("tile"):
                wins.append(1)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(wins) == 1
        assert reg.stats() == {"in_flight": 1, "absent": 0}


class TestMemoryResourceCache:
    def test_put_get(self):
        cache = MemoryResourceCache(100)
        assert cache.put("a", "A", 10)
        assert cache.get("a") == "A"
        assert "a" in cache
        assert cache.get("missing") is None

    def test_lru_eviction(self):
        cache = MemoryResourceCache(30)
        cache.put("a", "A", 10)
        cache.put("b", "B", 10)
        cache.put("c", "C", 10)
        cache.get("a")  # a becomes most recent
        cache.put("d", "D", 10)
        assert "b" not in cache
        assert all(k in cache for k in ("a", "c", "d"))
        assert cache.stats()["used_bytes"] == 30

    def test_replace_updates_size(self):
        cache = MemoryResourceCache(100)
        cache.put("a", "A", 40)
        cache.put("a", "A2", 10)
        assert cache.get("a") == "A2"
        assert cache.stats()["used_bytes"] == 10

    def test_oversized_resource_not_cached(self):
        cache = MemoryResourceCache(10)
        assert cache.put("big", "X", 11) is False
        assert len(cache) == 0

    def test_remove_and_clear(self):
        cache = MemoryResourceCache(100)
        cache.put("a", "A", 10)
        cache.put("b", "B", 10)
        cache.remove("a")
        assert "a" not in cache and cache.stats()["used_bytes"] == 10
        cache.clear()
        assert len(cache) == 0 and cache.stats()["used_bytes"] == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            MemoryResourceCache(0)
