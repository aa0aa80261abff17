"""
Error Types

Exceptions raised inside the tracker. None of them escape an engine
operation: the engine catches them at the operation boundary and turns them
into an error envelope plus a notification.
"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""
    field: str
    message: str


class WarrantyTrackerError(Exception):
    """Base class for tracker errors."""
    error_code = "TRACKER_ERROR"


class ValidationError(WarrantyTrackerError):
    """Raised when product data fails field validation."""
    error_code = "VALIDATION_FAILED"

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        fields = ", ".join(e.field for e in self.errors)
        super().__init__(f"Product information validation failed: {fields}")


class PersistenceError(WarrantyTrackerError):
    """Raised when the key-value store cannot be read or written."""
    error_code = "PERSISTENCE_FAILED"


class ImportFormatError(WarrantyTrackerError):
    """Raised when an import document is malformed."""
    error_code = "INVALID_IMPORT"


class RenderError(WarrantyTrackerError):
    """Raised when a render pass fails while materializing cards."""
    error_code = "RENDER_FAILED"


class ProductNotFoundError(WarrantyTrackerError):
    """Raised when an operation targets an unknown product id."""
    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")
