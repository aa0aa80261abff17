"""
View Models

Structured view fragments produced by the render pipeline. A ProductCard is
what the render cache stores and what a presentation surface displays.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class DetailRow(BaseModel):
    """A labelled value shown in the card body."""
    label: str
    value: str
    icon: str = ""
    css_class: str = ""


class CardBadge(BaseModel):
    """Warranty badge shown in the card header."""
    status: str
    text: str
    css_class: str
    icon: str


class ProductCard(BaseModel):
    """Materialized view of a single product."""
    product_id: str
    title: str
    meta: List[str] = Field(default_factory=list)
    badge: CardBadge
    details: List[DetailRow] = Field(default_factory=list)
    notes: Optional[str] = None
    actions: List[str] = Field(default_factory=lambda: ["edit", "delete"])

    def render_text(self) -> str:
        """Plain-text rendering used by the command-line surface."""
        lines = [f"{self.title} [{self.badge.text}]  ({self.product_id})"]
        if self.meta:
            lines.append("  " + " / ".join(self.meta))
        for row in self.details:
            lines.append(f"  {row.label}: {row.value}")
        if self.notes:
            lines.append(f"  Notes: {self.notes}")
        return "\n".join(lines)


class Viewport(BaseModel):
    """Scroll position and visible height of the presentation surface."""
    scroll_offset: int = 0
    height: int = 900


class RenderResult(BaseModel):
    """Outcome of one render pass."""
    items: List[ProductCard] = Field(default_factory=list)
    empty: bool = False
    total_visible: int = 0
    window_start: int = 0
    window_end: int = 0
    offset_top: int = 0
    offset_bottom: int = 0
    virtualized: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
