import logging
from typing import Callable, Optional

from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)


class ActiveStatusCache:
    """
    Memoizes PromotionService.is_active results per promotion id.

    Owned by the caller: build one per checkout (or share one per process) and
    pass it to the evaluator. Nothing is cached unless a cache is passed.

    Keys pattern: {prefix}:active:{promo_id}
    """

    def __init__(self, alias: str = "default", ttl: Optional[int] = None, prefix: str = "promotions"):
        self.backend = caches[alias]
        self.ttl = settings.PROMOTIONS_ACTIVE_CACHE_TTL if ttl is None else ttl
        self.prefix = prefix
        self._keys: set[str] = set()

    def _build_key(self, promo_id: str) -> str:
        return f"{self.prefix}:active:{promo_id}"

    def get(self, promo_id: str) -> Optional[bool]:
        return self.backend.get(self._build_key(promo_id))

    def set(self, promo_id: str, is_active: bool) -> None:
        key = self._build_key(promo_id)
        self.backend.set(key, is_active, self.ttl)
        self._keys.add(key)

    def memoize(self, promo_id: str, loader_fn: Callable[[], bool]) -> bool:
        """Cache-aside: return the cached status or compute and store it."""
        if not promo_id or self.ttl <= 0:
            return loader_fn()
        cached = self.get(promo_id)
        if cached is not None:
            return cached
        value = loader_fn()
        self.set(promo_id, value)
        return value

    def clear(self, promo_id: Optional[str] = None) -> None:
        if promo_id is not None:
            key = self._build_key(promo_id)
            self.backend.delete(key)
            self._keys.discard(key)
            return
        self.backend.delete_many(list(self._keys))
        logger.debug(f"[PROMO CACHE] cleared {len(self._keys)} keys")
        self._keys.clear()
