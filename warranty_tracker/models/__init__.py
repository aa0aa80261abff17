"""Models Package - Data models for the warranty tracker."""

from .product import Product, ProductDraft, WarrantyState, WarrantyStatus
from .state import (
    CollectionStats,
    ExportArtifact,
    FilterCriteria,
    Notification,
    NotificationLevel,
    PerformanceSample,
    PerformanceStats,
)
from .view import CardBadge, DetailRow, ProductCard, RenderResult, Viewport

__all__ = [
    "Product",
    "ProductDraft",
    "WarrantyState",
    "WarrantyStatus",
    "CollectionStats",
    "ExportArtifact",
    "FilterCriteria",
    "Notification",
    "NotificationLevel",
    "PerformanceSample",
    "PerformanceStats",
    "CardBadge",
    "DetailRow",
    "ProductCard",
    "RenderResult",
    "Viewport",
]
