"""
Configuration Management for Warranty Tracker
==============================================
Centralized configuration for cache sweeps, filtering, rendering and
performance monitoring. Every tuning constant lives here so it can be
overridden from the environment or a TOML file.
"""

import os
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)

ENV_PREFIX = "WARRANTY_TRACKER_"


class CacheConfig(BaseModel):
    """Render cache sweep settings."""

    sweep_interval_seconds: float = Field(
        default=60.0,
        description="How often the sweep timer ticks"
    )
    routine_threshold_seconds: float = Field(
        default=300.0,
        description="Minimum time between routine sweeps"
    )
    routine_max_entries: int = Field(
        default=100,
        description="Routine sweep evicts when the cache holds more than this"
    )
    routine_evict_count: int = Field(
        default=50,
        description="Oldest entries removed by a routine sweep"
    )
    emergency_max_entries: int = Field(
        default=200,
        description="Any tick evicts immediately above this size"
    )
    emergency_evict_count: int = Field(
        default=100,
        description="Oldest entries removed by an emergency sweep"
    )


class FilterConfig(BaseModel):
    """Search and filter settings."""

    search_debounce_ms: float = Field(
        default=300.0,
        description="Quiet period before a typed search term is applied"
    )


class RenderConfig(BaseModel):
    """Render pipeline and virtualization settings."""

    virtualization_enabled: bool = Field(
        default=False,
        description="Only materialize the visible window of long lists"
    )
    virtualization_threshold: int = Field(
        default=50,
        description="Visible-set size above which virtualization kicks in"
    )
    item_extent: int = Field(default=300, description="Estimated card height")
    viewport_height: int = Field(default=900, description="Visible surface height")
    overscan: int = Field(default=5, description="Extra cards rendered above and below the window")
    scroll_throttle_ms: float = Field(
        default=16.0,
        description="Minimum spacing between scroll-driven window recomputations"
    )


class MonitorConfig(BaseModel):
    """Performance monitor settings."""

    capacity: int = Field(default=100, description="Samples kept in the ring buffer")
    slow_operation_ms: float = Field(
        default=100.0,
        description="Durations above this log a performance warning"
    )


class WarrantyRules(BaseModel):
    """Warranty classification and validation rules."""

    expiring_window_days: int = Field(
        default=30,
        description="Days before expiry during which a warranty counts as expiring"
    )
    max_warranty_months: int = Field(default=120, description="Longest accepted warranty period")


class TrackerConfig(BaseModel):
    """Main configuration for the warranty tracker."""

    data_path: str = Field(
        default=str(Path.home() / ".warranty_tracker" / "store.json"),
        description="Location of the JSON key-value store"
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    cache: CacheConfig = Field(default_factory=CacheConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    warranty: WarrantyRules = Field(default_factory=WarrantyRules)

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        """Load configuration from environment variables."""
        env = os.environ

        def _get(name: str, default: Any) -> Any:
            return env.get(f"{ENV_PREFIX}{name}", default)

        cache = CacheConfig(
            sweep_interval_seconds=float(_get("SWEEP_INTERVAL_SECONDS", "60")),
            routine_threshold_seconds=float(_get("ROUTINE_THRESHOLD_SECONDS", "300")),
            routine_max_entries=int(_get("ROUTINE_MAX_ENTRIES", "100")),
            routine_evict_count=int(_get("ROUTINE_EVICT_COUNT", "50")),
            emergency_max_entries=int(_get("EMERGENCY_MAX_ENTRIES", "200")),
            emergency_evict_count=int(_get("EMERGENCY_EVICT_COUNT", "100"))
        )

        render = RenderConfig(
            virtualization_enabled=_get("VIRTUALIZATION", "false").lower() == "true",
            virtualization_threshold=int(_get("VIRTUALIZATION_THRESHOLD", "50")),
            item_extent=int(_get("ITEM_EXTENT", "300")),
            viewport_height=int(_get("VIEWPORT_HEIGHT", "900")),
            overscan=int(_get("OVERSCAN", "5")),
            scroll_throttle_ms=float(_get("SCROLL_THROTTLE_MS", "16"))
        )

        return cls(
            data_path=_get("DATA_PATH", cls.model_fields["data_path"].default),
            log_level=_get("LOG_LEVEL", "INFO"),
            cache=cache,
            filters=FilterConfig(search_debounce_ms=float(_get("SEARCH_DEBOUNCE_MS", "300"))),
            render=render,
            monitor=MonitorConfig(
                capacity=int(_get("MONITOR_CAPACITY", "100")),
                slow_operation_ms=float(_get("SLOW_OPERATION_MS", "100"))
            ),
            warranty=WarrantyRules(
                expiring_window_days=int(_get("EXPIRING_WINDOW_DAYS", "30")),
                max_warranty_months=int(_get("MAX_WARRANTY_MONTHS", "120"))
            )
        )

    @classmethod
    def from_toml(cls, path: str) -> "TrackerConfig":
        """
        Load configuration from a TOML file.

        Tables map onto the nested sections, e.g. ``[cache]`` or ``[render]``.
        A missing or unreadable file falls back to defaults.
        """
        data: Dict[str, Any] = {}
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError:
            logger.warning(f"Config file not found at {path}")
        except tomllib.TOMLDecodeError as e:
            logger.warning(f"Error loading config: {e}")
        return cls.model_validate(data.get("tracker", data))


def load_config(path: Optional[str] = None) -> TrackerConfig:
    """Load from a TOML file when given, otherwise from the environment."""
    if path:
        return TrackerConfig.from_toml(path)
    return TrackerConfig.from_env()
