"""
Unit tests for the content cache.

Tests cover:
- Store and retrieve by path
- TTL expiration on lookup
- FIFO eviction at capacity
- Invalidation and statistics
"""

from pathlib import Path

from fullcontext_mcp.content_cache import ContentCache


class TestContentCache:
    """Tests for ContentCache."""

    def test_store_and_retrieve(self, temp_dir: Path):
        cache = ContentCache()
        path = temp_dir / "a.py"

        cache.set(path, "result")

        assert cache.get(path) == "result"
        assert path in cache

    def test_relative_and_absolute_paths_share_entry(self, temp_dir: Path, monkeypatch):
        """Keys are resolved absolute paths."""
        monkeypatch.chdir(temp_dir)
        cache = ContentCache()

        cache.set("a.py", "result")

        assert cache.get(temp_dir / "a.py") == "result"

    def test_entry_expires_after_ttl(self, clock):
        """An entry older than the TTL is a miss and is dropped."""
        cache = ContentCache(ttl_seconds=30, clock=clock)
        cache.set("/work/a.py", "result")

        clock.advance(30)
        assert cache.get("/work/a.py") == "result"

        clock.advance(0.5)
        assert cache.get("/work/a.py") is None
        assert len(cache) == 0

    def test_oldest_entry_evicted_at_capacity(self):
        """Eviction is by insertion order, not by access."""
        cache = ContentCache(max_entries=2)
        cache.set("/work/a", 1)
        cache.set("/work/b", 2)
        cache.get("/work/a")

        cache.set("/work/c", 3)

        assert cache.get("/work/a") is None
        assert cache.get("/work/b") == 2
        assert cache.get("/work/c") == 3
        assert cache.get_stats()["evictions"] == 1

    def test_invalidate(self):
        cache = ContentCache()
        cache.set("/work/a", 1)

        assert cache.invalidate("/work/a") is True
        assert cache.invalidate("/work/a") is False
        assert cache.get("/work/a") is None

    def test_stats_track_hits_and_misses(self):
        cache = ContentCache(max_entries=10, ttl_seconds=5)

        cache.get("/work/a")
        cache.set("/work/a", 1)
        cache.get("/work/a")
        cache.get("/work/a")

        stats = cache.get_stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["size"] == 1
        assert stats["max_size"] == 10
        assert stats["hit_rate"] == 2 / 3

    def test_clear(self):
        cache = ContentCache()
        cache.set("/work/a", 1)
        cache.set("/work/b", 2)

        cache.clear()

        assert len(cache) == 0
