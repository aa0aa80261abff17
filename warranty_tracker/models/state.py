"""
Engine State Models

Filter criteria, notifications and statistics exchanged between the engine
and whatever drives it.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, Field


class FilterCriteria(BaseModel):
    """Active filter values. Empty strings mean "match all"."""
    search_term: str = ""
    category: str = ""
    warranty_status: str = ""

    @property
    def normalized_search(self) -> str:
        return self.search_term.lower().strip()

    @property
    def active(self) -> bool:
        return bool(self.normalized_search or self.category or self.warranty_status.strip())

    def signature(self) -> str:
        """Stable string summarizing the criteria."""
        # category is kept verbatim: it is matched exactly
        return json.dumps([
            self.normalized_search,
            self.category,
            self.warranty_status.strip().lower(),
        ])


class NotificationLevel(str, Enum):
    """Notification severities."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """User-facing message emitted by an engine operation."""
    message: str
    level: NotificationLevel = NotificationLevel.INFO


@dataclass(frozen=True)
class PerformanceSample:
    """One timed operation."""
    operation: str
    duration_ms: float
    timestamp: float


class PerformanceStats(BaseModel):
    """Aggregate over the monitor's current samples."""
    average: int
    max: float
    min: float
    sample_count: int
    cache_size: int = 0


class CollectionStats(BaseModel):
    """Counts shown above the product list."""
    total: int
    displayed: int
    by_status: Dict[str, int] = Field(default_factory=dict)

    @property
    def summary(self) -> str:
        if self.displayed != self.total:
            return f"Displayed: {self.displayed} / Total: {self.total} products"
        return f"Total: {self.total} products"


class ExportArtifact(BaseModel):
    """A serialized export ready to be written or downloaded."""
    filename: str
    content: str
    product_count: int
    path: Optional[str] = None
