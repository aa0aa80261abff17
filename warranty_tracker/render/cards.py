"""
Product Cards

Builds the view fragment for one product: header, warranty badge, detail
rows and notes.
"""

from datetime import datetime

from warranty_tracker.models.product import Product, WarrantyStatus
from warranty_tracker.models.view import CardBadge, DetailRow, ProductCard


STATUS_CLASSES = {
    "valid": "warranty-valid",
    "expiring": "warranty-expiring",
    "expired": "warranty-expired",
    "unknown": "warranty-unknown",
}

STATUS_ICONS = {
    "valid": "fa-shield-alt",
    "expiring": "fa-exclamation-triangle",
    "expired": "fa-times-circle",
    "unknown": "fa-question-circle",
}


def format_date(value: str) -> str:
    """MM/DD/YYYY, ``Not set`` when empty, ``Invalid date`` when unparseable."""
    if not value:
        return "Not set"
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").strftime("%m/%d/%Y")
    except ValueError:
        return "Invalid date"


def build_card(product: Product, warranty: WarrantyStatus) -> ProductCard:
    status = warranty.status.value
    css_class = STATUS_CLASSES.get(status, "warranty-unknown")

    details = [
        DetailRow(label="Category", value=product.category or "Uncategorized", icon="fa-tag"),
        DetailRow(label="Purchase Date", value=format_date(product.purchase_date), icon="fa-calendar-alt"),
        DetailRow(label="Warranty Period", value=f"{product.warranty_period or 0} months", icon="fa-shield-alt"),
    ]
    if warranty.expiry_date:
        details.append(DetailRow(
            label="Warranty Expires",
            value=format_date(warranty.expiry_date),
            icon="fa-clock",
            css_class=css_class
        ))
    if product.price > 0:
        details.append(DetailRow(label="Price", value=f"RM {product.price:.2f}", icon="fa-dollar-sign"))
    if product.store:
        details.append(DetailRow(label="Store", value=product.store, icon="fa-store"))
    if product.serial_number:
        details.append(DetailRow(label="Serial Number", value=product.serial_number, icon="fa-barcode"))

    return ProductCard(
        product_id=product.id,
        title=product.name,
        meta=[value for value in (product.brand, product.model) if value],
        badge=CardBadge(
            status=status,
            text=warranty.status_text,
            css_class=css_class,
            icon=STATUS_ICONS.get(status, "fa-question-circle")
        ),
        details=details,
        notes=product.notes or None
    )
