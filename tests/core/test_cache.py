import threading

import pytest

from core.utils.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestTTLCache:
    def test_set_and_get(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=4, ttl_seconds=10, clock=clock)
        cache.set("a", 1)

        assert cache.get("a") == 1
        assert cache.get("missing", "default") == "default"

    def test_entries_expire(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=4, ttl_seconds=10, clock=clock)
        cache.set("a", 1)

        clock.now = 9.9
        assert cache.get("a") == 1

        clock.now = 10.0
        assert cache.get("a") is None

    def test_per_entry_ttl_override(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=4, ttl_seconds=10, clock=clock)
        cache.set("short", 1, ttl_seconds=1)

        clock.now = 2
        assert cache.get("short") is None

    def test_lru_eviction(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=2, ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_zero_entries_disables_cache(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=0, ttl_seconds=10, clock=clock)
        cache.set("a", 1)

        assert cache.enabled is False
        assert cache.get("a") is None

    def test_get_or_set_computes_once_while_fresh(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=4, ttl_seconds=10, clock=clock)
        calls: list[int] = []

        def factory() -> int:
            calls.append(1)
            return 42

        assert cache.get_or_set("k", factory) == 42
        assert cache.get_or_set("k", factory) == 42
        assert len(calls) == 1

        clock.now = 11
        cache.get_or_set("k", factory)
        assert len(calls) == 2

    def test_delete_clear_and_purge(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=4, ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2, ttl_seconds=1)
        cache.set("c", 3)

        cache.delete("a")
        assert cache.get("a") is None

        clock.now = 5
        assert cache.purge_expired() == 1

        cache.clear()
        assert cache.stats()["size"] == 0

    def test_stats_counts_hits_and_misses(self, clock: FakeClock) -> None:
        cache = TTLCache(max_entries=4, ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["max_entries"] == 4

    def test_negative_settings_rejected(self) -> None:
        with pytest.raises(ValueError):
            TTLCache(max_entries=-1, ttl_seconds=10)
        with pytest.raises(ValueError):
            TTLCache(max_entries=1, ttl_seconds=-1)

    def test_concurrent_writers_respect_bound(self) -> None:
        cache = TTLCache(max_entries=50, ttl_seconds=60)

        def writer(prefix: int) -> None:
            for i in range(200):
                cache.set(f"{prefix}-{i}", i)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert cache.stats()["size"] == 50
