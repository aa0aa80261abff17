"""
Persistence Adapters
=====================
Key-value storage for the product collection. The whole collection is stored
as one JSON blob under a single key, so every save is all-or-nothing from the
engine's point of view.

Two adapters ship:
- InMemoryAdapter: dictionary-backed, used by tests and throwaway sessions
- JsonFileAdapter: a JSON object on disk, rewritten atomically on each save
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from pydantic import ValidationError as PydanticValidationError

from warranty_tracker.errors import PersistenceError
from warranty_tracker.models.product import Product


logger = logging.getLogger(__name__)

STORAGE_KEY = "productData"


class PersistenceAdapter(Protocol):
    """Contract the product store relies on."""

    def load(self) -> List[Product]:
        """Stored products, newest first. Never raises."""
        ...

    def save(self, products: Sequence[Product]) -> None:
        """Persist the full collection. Raises PersistenceError on failure."""
        ...


def sort_by_recency(products: Sequence[Product]) -> List[Product]:
    """Newest created first."""
    return sorted(products, key=lambda p: p.created_moment, reverse=True)


class KeyValueAdapter(ABC):
    """Shared load/save logic over a string key-value backend."""

    def __init__(self, key: str = STORAGE_KEY):
        self.key = key

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Raw value stored under ``key``, or None."""

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``. Raises PersistenceError on failure."""

    def load(self) -> List[Product]:
        try:
            raw = self.read(self.key)
        except PersistenceError as e:
            logger.error(f"Failed to load product data - error={str(e)}")
            return []

        if raw is None:
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored product data is not valid JSON - error={str(e)}")
            return []

        if not isinstance(records, list):
            logger.error(f"Stored product data has unexpected shape: {type(records).__name__}")
            return []

        products = []
        for index, record in enumerate(records):
            try:
                products.append(Product.model_validate(record))
            except PydanticValidationError as e:
                logger.warning(f"Skipping unreadable stored product #{index} - error={str(e)}")
        return sort_by_recency(products)

    def save(self, products: Sequence[Product]) -> None:
        payload = json.dumps([p.to_dict() for p in products])
        self.write(self.key, payload)
        logger.debug(f"Product data saved - count={len(products)}")


class InMemoryAdapter(KeyValueAdapter):
    """Dictionary-backed store."""

    def __init__(self, key: str = STORAGE_KEY, data: Optional[Dict[str, str]] = None):
        super().__init__(key)
        self.data: Dict[str, str] = dict(data or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileAdapter(KeyValueAdapter):
    """
    JSON object on disk holding string values by key.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``.
    """

    def __init__(self, path: str, key: str = STORAGE_KEY):
        super().__init__(key)
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected store format in {self.path}")
        return data

    def read(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def write(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except PersistenceError:
            logger.warning(f"Overwriting unreadable store at {self.path}")
            data = {}
        data[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".store-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
