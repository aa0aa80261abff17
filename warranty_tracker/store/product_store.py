"""
Product Store

The single mutable source of truth: an ordered collection of products,
newest first. Every mutation bumps the collection version and writes the
full collection through the persistence adapter before returning, so a
render that follows a mutation always sees the finished result.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from warranty_tracker.errors import PersistenceError, ProductNotFoundError
from warranty_tracker.models.product import (
    Product,
    format_timestamp,
    generate_id,
    parse_timestamp,
    utc_now,
)
from warranty_tracker.store.persistence import PersistenceAdapter


logger = logging.getLogger(__name__)


def _normalized(value: Optional[str]) -> str:
    return (value or "").lower().strip()


class ProductStore:
    """Ordered, exclusively owned product collection."""

    def __init__(self, adapter: PersistenceAdapter, clock: Callable[[], datetime] = utc_now):
        self._adapter = adapter
        self._clock = clock
        self._products: List[Product] = []
        self._version = 0
        self.last_sync_error: Optional[PersistenceError] = None

    @property
    def version(self) -> int:
        """Increments on every mutation."""
        return self._version

    def __len__(self) -> int:
        return len(self._products)

    def all(self) -> Tuple[Product, ...]:
        return tuple(self._products)

    def get(self, product_id: str) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def load(self) -> int:
        """Replace the in-memory collection with what the adapter holds."""
        self._products = list(self._adapter.load())
        self._version += 1
        logger.info(f"Loaded {len(self._products)} products")
        return len(self._products)

    def find_duplicate(self, fields: Dict[str, Any]) -> Optional[Product]:
        """An existing product with the same name, brand and model, if any."""
        name = _normalized(fields.get("name"))
        brand = _normalized(fields.get("brand"))
        model = _normalized(fields.get("model"))
        for product in self._products:
            if (_normalized(product.name) == name
                    and _normalized(product.brand) == brand
                    and _normalized(product.model) == model):
                return product
        return None

    def create(self, fields: Dict[str, Any]) -> Product:
        """Add a new product at the front of the collection."""
        stamp = self._timestamp()
        data = dict(fields)
        data.update(id=generate_id(), created_at=stamp, updated_at=stamp)
        product = Product(**data)
        self._products.insert(0, product)
        self._commit()
        logger.info(f"Product saved successfully: {product.id}")
        return product

    def update(self, product_id: str, fields: Dict[str, Any]) -> Product:
        """Merge ``fields`` into an existing product and refresh updated_at."""
        index = self._index_of(product_id)
        current = self._products[index]
        changes = {k: v for k, v in fields.items() if k not in ("id", "created_at")}
        changes["updated_at"] = self._timestamp(after=current.updated_at)
        updated = current.model_copy(update=changes)
        self._products[index] = updated
        self._commit()
        logger.info(f"Product updated successfully: {product_id}")
        return updated

    def delete(self, product_id: str) -> Product:
        index = self._index_of(product_id)
        removed = self._products.pop(index)
        self._commit()
        logger.info(f"Product deleted successfully: {product_id}")
        return removed

    def replace_all(self, products: Sequence[Product]) -> None:
        """Swap in a whole new collection, keeping the given order."""
        seen = set()
        unique = []
        for product in products:
            if product.id in seen:
                logger.warning(f"Dropping duplicate product id on replace: {product.id}")
                continue
            seen.add(product.id)
            unique.append(product)
        self._products = unique
        self._commit()

    def clear(self) -> None:
        self._products = []
        self._commit()

    def _index_of(self, product_id: str) -> int:
        for index, product in enumerate(self._products):
            if product.id == product_id:
                return index
        raise ProductNotFoundError(product_id)

    def _timestamp(self, after: Optional[str] = None) -> str:
        """
        Current ISO timestamp, strictly later than ``after`` when given.

        The timestamp doubles as the content version in render cache keys,
        so two edits must never share one.
        """
        moment = self._clock()
        previous = parse_timestamp(after)
        if previous is not None:
            current = parse_timestamp(format_timestamp(moment))
            if current <= previous:
                moment = previous + timedelta(milliseconds=1)
        return format_timestamp(moment)

    def _commit(self) -> None:
        self._version += 1
        try:
            self._adapter.save(self._products)
            self.last_sync_error = None
        except PersistenceError as e:
            self.last_sync_error = e
            logger.warning(f"Failed to save product data - error={str(e)}")
