from __future__ import annotations

from foodie.places.cache import TTLCache, make_key


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cache_miss_then_hit():
    cache = TTLCache(ttl=60)
    assert cache.get({"cuisine": "pizza"}) is None
    cache.set({"cuisine": "pizza"}, ["result"])
    assert cache.get({"cuisine": "pizza"}) == ["result"]

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50.0


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl=300, clock=clock)
    cache.set({"location": "brooklyn"}, "value")

    clock.now += 299
    assert cache.get({"location": "brooklyn"}) == "value"

    clock.now += 2
    assert cache.get({"location": "brooklyn"}) is None
    assert cache.stats()["size"] == 0


def test_key_ignores_dict_order():
    assert make_key({"a": 1, "b": 2}) == make_key({"b": 2, "a": 1})
    assert make_key({"a": 1}) != make_key({"a": 2})


def test_clear_resets_entries_and_counters():
    cache = TTLCache()
    cache.set({"k": 1}, "v")
    cache.get({"k": 1})
    cache.clear()
    assert cache.stats() == {"size": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}
