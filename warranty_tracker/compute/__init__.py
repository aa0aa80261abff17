"""Compute Package - Deterministic warranty calculations."""

from .warranty import WarrantyMemo, calculate_expiry, compute_status

__all__ = ["WarrantyMemo", "calculate_expiry", "compute_status"]
