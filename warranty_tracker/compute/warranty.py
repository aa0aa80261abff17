"""
Warranty Computation

Deterministic warranty status derivation:
- Expiry date from purchase date plus warranty months (calendar arithmetic)
- Days remaining until expiry
- Classification into valid / expiring / expired / unknown

All calculations are deterministic: same input -> same output. The
calculator holds no state; per-product memoization lives in WarrantyMemo,
which the engine owns.
"""

import logging
import math
from datetime import date, datetime, time
from typing import Callable, Dict, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from warranty_tracker.models.product import Product, WarrantyState, WarrantyStatus


logger = logging.getLogger(__name__)

DEFAULT_EXPIRING_WINDOW_DAYS = 30

UNKNOWN_STATUS = WarrantyStatus(status=WarrantyState.UNKNOWN)

Moment = Union[date, datetime]


def parse_purchase_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD purchase date. Timestamps are truncated to the date."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def calculate_expiry(purchase: date, warranty_months: int) -> date:
    """Add warranty months to a purchase date, clamping to the month's last day."""
    return purchase + relativedelta(months=warranty_months)


def days_until(expiry: date, now: Moment) -> int:
    """
    Whole days from ``now`` until ``expiry``, rounded up.

    A datetime ``now`` is compared against midnight of the expiry date so a
    partially elapsed day still counts as remaining.
    """
    if isinstance(now, datetime):
        expiry_moment = datetime.combine(expiry, time.min, tzinfo=now.tzinfo)
        return math.ceil((expiry_moment - now).total_seconds() / 86400)
    return (expiry - now).days


def classify(days_remaining: int, expiring_window_days: int = DEFAULT_EXPIRING_WINDOW_DAYS) -> WarrantyState:
    if days_remaining < 0:
        return WarrantyState.EXPIRED
    if days_remaining <= expiring_window_days:
        return WarrantyState.EXPIRING
    return WarrantyState.VALID


def compute_status(
    purchase_date: Optional[str],
    warranty_period: Optional[int],
    now: Moment,
    expiring_window_days: int = DEFAULT_EXPIRING_WINDOW_DAYS
) -> WarrantyStatus:
    """
    Compute the warranty status of a product.

    Args:
        purchase_date: Date of purchase (YYYY-MM-DD)
        warranty_period: Warranty length in months
        now: Reference moment (date or datetime)
        expiring_window_days: Days before expiry that count as expiring

    Returns:
        WarrantyStatus with status, expiry date and days remaining
    """
    if not purchase_date or not warranty_period:
        return UNKNOWN_STATUS

    purchase = parse_purchase_date(purchase_date)
    if purchase is None:
        logger.debug(f"Unparseable purchase date: {purchase_date}")
        return UNKNOWN_STATUS

    expiry = calculate_expiry(purchase, int(warranty_period))
    remaining = days_until(expiry, now)

    return WarrantyStatus(
        status=classify(remaining, expiring_window_days),
        expiry_date=expiry.isoformat(),
        days_remaining=remaining
    )


def memo_key(product: Product) -> str:
    """Key under which a product's status is memoized."""
    return f"{product.purchase_date}_{product.warranty_period}"


class WarrantyMemo:
    """
    Side-table of memoized warranty statuses, keyed by product id.

    An entry is reused while the product's purchase date and warranty period
    are unchanged; any change to either yields a new key and a recompute.
    """

    def __init__(
        self,
        clock: Callable[[], Moment],
        expiring_window_days: int = DEFAULT_EXPIRING_WINDOW_DAYS
    ):
        self._clock = clock
        self.expiring_window_days = expiring_window_days
        self._entries: Dict[str, Tuple[str, WarrantyStatus]] = {}

    def status_for(self, product: Product) -> WarrantyStatus:
        key = memo_key(product)
        cached = self._entries.get(product.id)
        if cached is not None and cached[0] == key:
            return cached[1]

        status = compute_status(
            product.purchase_date,
            product.warranty_period,
            self._clock(),
            self.expiring_window_days
        )
        self._entries[product.id] = (key, status)
        return status

    def discard(self, product_id: str) -> None:
        self._entries.pop(product_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
