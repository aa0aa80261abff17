"""Cache Package - Render cache and its eviction sweeps."""

from .render_cache import CacheSweeper, RenderCache, cache_key

__all__ = ["CacheSweeper", "RenderCache", "cache_key"]
