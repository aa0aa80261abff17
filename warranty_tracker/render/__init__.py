"""Render Package - Card building and the render pipeline."""

from .cards import build_card, format_date
from .pipeline import RenderPipeline, visible_window

__all__ = ["RenderPipeline", "build_card", "format_date", "visible_window"]
