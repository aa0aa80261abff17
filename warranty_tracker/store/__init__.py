"""Store Package - Product collection, persistence and data transfer."""

from .persistence import InMemoryAdapter, JsonFileAdapter, PersistenceAdapter
from .product_store import ProductStore
from .transfer import build_export, parse_import
from .validation import validate_draft

__all__ = [
    "InMemoryAdapter",
    "JsonFileAdapter",
    "PersistenceAdapter",
    "ProductStore",
    "build_export",
    "parse_import",
    "validate_draft",
]
