from ev_trip_planner.cache import ExpiringCache

from conftest import FakeClock


class TestExpiringCache:
    def test_miss_then_hit(self):
        cache = ExpiringCache("test", ttl_seconds=60, clock=FakeClock())
        assert cache.get("a") is None
        cache.put("a", 1)
        assert cache.get("a") == 1
        assert cache.get_stats()["hits"] == 1
        assert cache.get_stats()["misses"] == 1

    def test_expiry(self):
        clock = FakeClock()
        cache = ExpiringCache("test", ttl_seconds=60, clock=clock)
        cache.put("a", 1)
        clock.advance(59)
        assert cache.get("a") == 1
        clock.advance(2)
        assert cache.get("a") is None

    def test_bounded(self):
        cache = ExpiringCache("test", ttl_seconds=60, maxsize=2, clock=FakeClock())
        for key in "abc":
            cache.put(key, key)
        assert len(cache) == 2

    def test_clear(self):
        cache = ExpiringCache("test", ttl_seconds=60, clock=FakeClock())
        cache.put("a", 1)
        cache.clear()
        assert len(cache) == 0
        assert cache.get_stats()["entries"] == 0
