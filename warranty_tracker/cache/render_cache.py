"""
Render Cache

Maps a product content version to the card built from it. Keys embed the
product's updated (or created) timestamp, so a content change produces a new
key and the old entry is simply never asked for again. Orphaned entries are
removed by scheduled sweeps in insertion order.
"""

import logging
from collections import OrderedDict
from typing import Callable, Optional

from warranty_tracker.config import CacheConfig
from warranty_tracker.models.product import Product
from warranty_tracker.models.view import ProductCard
from warranty_tracker.scheduling.scheduler import PeriodicTask, Scheduler


logger = logging.getLogger(__name__)


def cache_key(product: Product) -> str:
    """Cache key for the product's current content version."""
    return f"{product.id}_{product.content_version}"


class RenderCache:
    """Insertion-ordered card cache. Reads always return a copy."""

    def __init__(self):
        self._entries: "OrderedDict[str, ProductCard]" = OrderedDict()

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[ProductCard]:
        card = self._entries.get(key)
        if card is None:
            return None
        return card.model_copy(deep=True)

    def put(self, key: str, card: ProductCard) -> None:
        # re-putting an existing key keeps its original insertion position
        self._entries[key] = card.model_copy(deep=True)

    def evict(self, count: int) -> int:
        """Remove the ``count`` oldest-inserted entries. Returns how many went."""
        removed = 0
        while removed < count and self._entries:
            self._entries.popitem(last=False)
            removed += 1
        return removed

    def clear(self) -> None:
        self._entries.clear()


class CacheSweeper:
    """
    Periodic eviction for a RenderCache.

    Every tick runs the emergency check; a routine sweep additionally runs
    once the routine threshold has passed since the previous one. Either
    sweep removes at least its configured count and never leaves more than
    ``routine_max_entries`` behind.
    """

    def __init__(
        self,
        cache: RenderCache,
        scheduler: Scheduler,
        config: Optional[CacheConfig] = None,
        on_routine_sweep: Optional[Callable[[], None]] = None
    ):
        self.cache = cache
        self.config = config or CacheConfig()
        self._scheduler = scheduler
        self._on_routine_sweep = on_routine_sweep
        self._last_routine: Optional[float] = None
        self._task = PeriodicTask(scheduler, self.config.sweep_interval_seconds, self.tick)

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        self._last_routine = self._scheduler.now()
        self._task.start()

    def stop(self) -> None:
        self._task.stop()

    def tick(self) -> None:
        cfg = self.config

        if self.cache.size > cfg.emergency_max_entries:
            removed = self._evict_down(cfg.emergency_evict_count)
            logger.warning(f"Emergency cache sweep evicted {removed} entries - size={self.cache.size}")

        now = self._scheduler.now()
        if self._last_routine is None:
            self._last_routine = now
        if now - self._last_routine > cfg.routine_threshold_seconds:
            if self.cache.size > cfg.routine_max_entries:
                self._evict_down(cfg.routine_evict_count)
            if self._on_routine_sweep is not None:
                self._on_routine_sweep()
            self._last_routine = now
            logger.info(f"Cache cleanup completed - size={self.cache.size}")

    def _evict_down(self, minimum: int) -> int:
        excess = self.cache.size - self.config.routine_max_entries
        return self.cache.evict(max(minimum, excess))
