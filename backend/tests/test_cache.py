"""Tests for the process-local lookup cache."""

from warehouse.core.cache import LookupCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_get_returns_stored_value():
    cache = LookupCache(default_ttl=60)
    cache.set("materials:list:1", {"a": 1})
    assert cache.get("materials:list:1") == {"a": 1}
    assert "materials:list:1" in cache


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = LookupCache(default_ttl=60, clock=clock)
    cache.set("materials:critical", [1])
    clock.now += 59
    assert cache.get("materials:critical") == [1]
    clock.now += 1
    assert cache.get("materials:critical") is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = LookupCache(default_ttl=60, clock=clock)
    cache.set("k", "v", ttl_seconds=5)
    clock.now += 5
    assert cache.get("k") is None


def test_invalidate_by_prefix():
    cache = LookupCache()
    cache.set("materials:list:1", 1)
    cache.set("materials:detail:3", 2)
    cache.set("products:list:1", 3)
    assert cache.invalidate("materials") == 2
    assert cache.get("products:list:1") == 3


def test_material_write_drops_products_and_dashboard():
    cache = LookupCache()
    cache.set("materials:list", 1)
    cache.set("products:detail:1", 2)
    cache.set("dashboard:summary", 3)
    cache.invalidate_materials()
    assert len(cache) == 0


def test_product_write_keeps_materials():
    cache = LookupCache()
    cache.set("materials:list", 1)
    cache.set("products:detail:1", 2)
    cache.set("dashboard:summary", 3)
    cache.invalidate_products()
    assert cache.get("materials:list") == 1
    assert cache.get("products:detail:1") is None
    assert cache.get("dashboard:summary") is None
