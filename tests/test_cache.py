import pytest

from smartdc.cache import TOMBSTONE, ResponseCache


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cache_entry_expires_after_default_window() -> None:
    clock = FakeClock(1_000.0)
    cache = ResponseCache(clock=clock)
    cache.put("/my/machines/abc", {"id": "abc"})

    clock.now = 1_000.0 + 59_999
    assert cache.get("/my/machines/abc").value == {"id": "abc"}

    clock.now = 1_000.0 + 60_001
    lookup = cache.get("/my/machines/abc")
    assert lookup.hit is False
    assert "/my/machines/abc" in cache


def test_cache_ttl_override_is_per_lookup() -> None:
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.put("/my/machines/abc", {"id": "abc"})
    clock.now = 16_000

    assert cache.get("/my/machines/abc", ttl=15_000).hit is False
    assert cache.get("/my/machines/abc").hit is True


def test_cache_purge_records_tombstone() -> None:
    cache = ResponseCache(clock=FakeClock())
    cache.put("/my/keys/laptop", {"name": "laptop"})
    cache.purge("/my/keys/laptop")

    lookup = cache.get("/my/keys/laptop")
    assert lookup.hit is True
    assert lookup.deleted is True
    assert lookup.value is TOMBSTONE


def test_discard_forgets_value_and_tombstone() -> None:
    cache = ResponseCache(clock=FakeClock())
    cache.purge("/my/machines/m1/tags")

    assert cache.discard("/my/machines/m1/tags") is True
    assert cache.get("/my/machines/m1/tags").hit is False
    assert cache.discard("/my/machines/m1/tags") is False


def test_disabled_cache_never_stores() -> None:
    cache = ResponseCache(enabled=False, clock=FakeClock())
    assert cache.put("/my", {"login": "jill"}) is False
    assert cache.get("/my").hit is False
    assert len(cache) == 0


def test_cache_evicts_least_recently_used() -> None:
    cache = ResponseCache(size=2, clock=FakeClock())
    cache.put("/a", 1)
    cache.put("/b", 2)
    assert cache.get("/a").value == 1
    cache.put("/c", 3)

    assert "/a" in cache
    assert "/b" not in cache
    assert "/c" in cache


def test_cache_rejects_bad_arguments() -> None:
    with pytest.raises(ValueError, match="size"):
        ResponseCache(size=0)
    cache = ResponseCache()
    with pytest.raises(ValueError, match="key"):
        cache.put("", 1)


def test_clear_drops_every_entry() -> None:
    cache = ResponseCache(clock=FakeClock())
    cache.put("/a", 1)
    cache.purge("/b")
    cache.clear()
    assert len(cache) == 0
    assert cache.get("/b").hit is False
