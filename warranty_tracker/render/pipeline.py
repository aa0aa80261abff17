"""
Render Pipeline

Turns the product collection into cards for the presentation surface:

1. Visible set: filtered when criteria are active, store order otherwise
2. Window: the whole set, or only the scrolled-into-view slice of a long list
3. Cards: copied from the render cache, or built and cached on a miss

Each pass is timed as ``renderProducts``. A failure while materializing
cards aborts that pass only; the store is never touched here.
"""

import logging
import math
from typing import Callable, Optional, Sequence, Tuple

from warranty_tracker.cache.render_cache import RenderCache, cache_key
from warranty_tracker.config import RenderConfig
from warranty_tracker.errors import RenderError
from warranty_tracker.filters.engine import FilterEngine, StatusLookup
from warranty_tracker.models.product import Product, WarrantyStatus
from warranty_tracker.models.state import FilterCriteria
from warranty_tracker.models.view import ProductCard, RenderResult, Viewport
from warranty_tracker.monitoring.performance import PerformanceMonitor
from warranty_tracker.render.cards import build_card


logger = logging.getLogger(__name__)

CardBuilder = Callable[[Product, WarrantyStatus], ProductCard]

RENDER_OPERATION = "renderProducts"


def visible_window(count: int, viewport: Viewport, item_extent: int, overscan: int) -> Tuple[int, int]:
    """Index range [start, end) of items intersecting the viewport, plus overscan."""
    extent = max(1, item_extent)
    first = max(0, viewport.scroll_offset) // extent
    shown = math.ceil(max(0, viewport.height) / extent)
    start = max(0, first - overscan)
    end = min(count, first + shown + overscan)
    return start, max(start, end)


class RenderPipeline:
    """Filter -> window -> cached card materialization."""

    def __init__(
        self,
        filter_engine: FilterEngine,
        cache: RenderCache,
        status_for: StatusLookup,
        monitor: PerformanceMonitor,
        config: Optional[RenderConfig] = None,
        card_builder: CardBuilder = build_card
    ):
        self.filter_engine = filter_engine
        self.cache = cache
        self.monitor = monitor
        self.config = config or RenderConfig()
        self._status_for = status_for
        self._build = card_builder

    def visible_products(
        self,
        products: Sequence[Product],
        criteria: FilterCriteria,
        version: Optional[int] = None
    ) -> list:
        if criteria.active:
            return self.filter_engine.apply(products, criteria, version)
        return list(products)

    def render(
        self,
        products: Sequence[Product],
        criteria: Optional[FilterCriteria] = None,
        version: Optional[int] = None,
        viewport: Optional[Viewport] = None
    ) -> RenderResult:
        criteria = criteria or FilterCriteria()
        viewport = viewport or Viewport(height=self.config.viewport_height)

        with self.monitor.timed(RENDER_OPERATION):
            try:
                return self._render(products, criteria, version, viewport)
            except Exception as e:
                logger.error(f"Rendering products failed - error={str(e)}", exc_info=True)
                return RenderResult(error=str(e))

    def _render(
        self,
        products: Sequence[Product],
        criteria: FilterCriteria,
        version: Optional[int],
        viewport: Viewport
    ) -> RenderResult:
        visible = self.visible_products(products, criteria, version)
        total = len(visible)
        if total == 0:
            return RenderResult(empty=True)

        cfg = self.config
        virtualized = cfg.virtualization_enabled and total > cfg.virtualization_threshold
        if virtualized:
            start, end = visible_window(total, viewport, cfg.item_extent, cfg.overscan)
        else:
            start, end = 0, total

        try:
            cards = [self.card_for(product) for product in visible[start:end]]
        except Exception as e:
            raise RenderError(f"Failed to materialize product cards: {e}") from e

        return RenderResult(
            items=cards,
            total_visible=total,
            window_start=start,
            window_end=end,
            offset_top=start * cfg.item_extent if virtualized else 0,
            offset_bottom=(total - end) * cfg.item_extent if virtualized else 0,
            virtualized=virtualized
        )

    def card_for(self, product: Product) -> ProductCard:
        key = cache_key(product)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        card = self._build(product, self._status_for(product))
        self.cache.put(key, card)
        return card
