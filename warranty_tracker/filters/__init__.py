"""Filters Package - Compound product filtering."""

from .engine import FilterEngine, matches_category, matches_search

__all__ = ["FilterEngine", "matches_category", "matches_search"]
