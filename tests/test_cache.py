from ainews.cache import NewsCache


def test_compute_key_is_order_independent():
    a = NewsCache.compute_key("latest", {"page": 1, "pageSize": 10})
    b = NewsCache.compute_key("latest", {"pageSize": 10, "page": 1})
    assert a == b
    assert a == 'latest_{"page":1,"pageSize":10}'
    assert NewsCache.compute_key("search", {"page": 1}) != NewsCache.compute_key("latest", {"page": 1})


def test_entry_valid_only_inside_ttl(clock):
    cache = NewsCache(ttl_seconds=600, clock=clock)
    key = cache.compute_key("latest", {"page": 1})
    assert not cache.is_valid(key)
    assert cache.get(key) is None

    cache.set(key, ["a"])
    assert cache.is_valid(key)
    clock.advance(599)
    assert cache.is_valid(key)
    clock.advance(1)
    assert not cache.is_valid(key)
    # stale data is still readable until it is overwritten
    assert cache.get(key) == ["a"]


def test_set_overwrites_and_restarts_ttl(clock):
    cache = NewsCache(ttl_seconds=600, clock=clock)
    cache.set("k", ["old"])
    clock.advance(700)
    cache.set("k", ["new"])
    assert cache.is_valid("k")
    assert cache.get("k") == ["new"]
    assert len(cache) == 1


def test_entries_filters_by_prefix(clock):
    cache = NewsCache(clock=clock)
    cache.set("gnews_{}", [1])
    cache.set("latest_{}", [2])
    cache.set("newsdata_{}", [3])
    assert [key for key, _ in cache.entries(("gnews_", "newsdata_"))] == ["gnews_{}", "newsdata_{}"]
