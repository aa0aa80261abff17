"""Field validation for product drafts."""

from datetime import date
from typing import List

from warranty_tracker.compute.warranty import parse_purchase_date
from warranty_tracker.errors import FieldError
from warranty_tracker.models.product import ProductDraft


def validate_draft(draft: ProductDraft, today: date, max_warranty_months: int = 120) -> List[FieldError]:
    """Return every field error in ``draft``; an empty list means valid."""
    errors = []

    if not draft.name or not draft.name.strip():
        errors.append(FieldError("name", "Product name cannot be empty"))

    if not draft.purchase_date or not draft.purchase_date.strip():
        errors.append(FieldError("purchase_date", "Purchase date cannot be empty"))
    else:
        purchase = parse_purchase_date(draft.purchase_date)
        if purchase is None:
            errors.append(FieldError("purchase_date", "Purchase date must be a YYYY-MM-DD date"))
        elif purchase > today:
            errors.append(FieldError("purchase_date", "Purchase date cannot be in the future"))

    period = draft.warranty_period or 0
    if period < 0 or period > max_warranty_months:
        errors.append(FieldError(
            "warranty_period",
            f"Warranty period should be between 0-{max_warranty_months} months"
        ))

    if (draft.price or 0) < 0:
        errors.append(FieldError("price", "Price cannot be negative"))

    return errors
