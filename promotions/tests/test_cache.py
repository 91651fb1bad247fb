from django.test import override_settings

from promotions.cache import ActiveStatusCache


class TestActiveStatusCache:
    def test_ttl_from_settings(self):
        with override_settings(PROMOTIONS_ACTIVE_CACHE_TTL=9):
            assert ActiveStatusCache().ttl == 9
        assert ActiveStatusCache(ttl=1).ttl == 1

    def test_memoize_calls_loader_once(self):
        status_cache = ActiveStatusCache(ttl=60)
        calls = []

        def loader():
            calls.append(1)
            return False

        assert status_cache.memoize("p1", loader) is False
        assert status_cache.memoize("p1", loader) is False
        assert len(calls) == 1

    def test_zero_ttl_disables_caching(self):
        status_cache = ActiveStatusCache(ttl=0)
        assert status_cache.memoize("p1", lambda: True) is True
        assert status_cache.get("p1") is None

    def test_blank_id_is_not_cached(self):
        status_cache = ActiveStatusCache(ttl=60)
        calls = []
        status_cache.memoize("", lambda: calls.append(1) or True)
        status_cache.memoize("", lambda: calls.append(1) or True)
        assert len(calls) == 2

    def test_clear_one(self):
        status_cache = ActiveStatusCache(ttl=60)
        status_cache.set("p1", True)
        status_cache.set("p2", False)
        status_cache.clear("p1")
        assert status_cache.get("p1") is None
        assert status_cache.get("p2") is False

    def test_clear_all(self):
        status_cache = ActiveStatusCache(ttl=60)
        status_cache.set("p1", True)
        status_cache.set("p2", False)
        status_cache.clear()
        assert status_cache.get("p1") is None
        assert status_cache.get("p2") is None

    def test_separate_prefixes_dont_collide(self):
        checkout = ActiveStatusCache(ttl=60, prefix="checkout")
        listing = ActiveStatusCache(ttl=60, prefix="listing")
        checkout.set("p1", True)
        assert listing.get("p1") is None
