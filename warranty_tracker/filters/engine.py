"""
Filter Engine

Derives the visible subset of products from the full collection and the
active criteria. Predicates are AND-combined and the input order is kept.

The last result is cached against the criteria signature and the collection
version; asking again with both unchanged returns the cached subset without
re-running any predicate.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from warranty_tracker.models.product import Product, WarrantyStatus
from warranty_tracker.models.state import FilterCriteria


logger = logging.getLogger(__name__)

StatusLookup = Callable[[Product], WarrantyStatus]


def matches_search(product: Product, term: str) -> bool:
    """Case-insensitive substring match on name, brand, model or category."""
    if not term:
        return True
    return any(
        term in (value or "").lower()
        for value in (product.name, product.brand, product.model, product.category)
    )


def matches_category(product: Product, category: str) -> bool:
    return not category or product.category == category


class FilterEngine:
    """Compound filter with signature-based short-circuit."""

    def __init__(self, status_for: StatusLookup):
        self._status_for = status_for
        self._last_key: Optional[Tuple[str, int]] = None
        self._last_result: Optional[List[Product]] = None
        self.recomputations = 0

    @property
    def last_signature(self) -> Optional[str]:
        return self._last_key[0] if self._last_key else None

    def invalidate(self) -> None:
        self._last_key = None
        self._last_result = None

    def apply(
        self,
        products: Sequence[Product],
        criteria: FilterCriteria,
        version: Optional[int] = None
    ) -> List[Product]:
        """
        Return the products matching ``criteria``.

        Args:
            products: Full collection in display order
            criteria: Active filter values
            version: Collection content version; without it the result is
                always recomputed

        Returns:
            New list of matching products in input order
        """
        signature = criteria.signature()
        if version is not None and self._last_key == (signature, version) and self._last_result is not None:
            return list(self._last_result)

        term = criteria.normalized_search
        category = criteria.category
        wanted_status = criteria.warranty_status.strip().lower()

        result = [
            product for product in products
            if matches_search(product, term)
            and matches_category(product, category)
            and self._matches_status(product, wanted_status)
        ]

        self.recomputations += 1
        self._last_key = (signature, version) if version is not None else None
        self._last_result = result
        logger.debug(f"Filter applied - signature={signature}, matched={len(result)}/{len(products)}")
        return list(result)

    def _matches_status(self, product: Product, wanted: str) -> bool:
        if not wanted:
            return True
        return self._status_for(product).status.value == wanted
