"""
Warranty Tracker

Local product and warranty tracking: a product store persisted to a
key-value file, with memoized warranty status, cached product cards,
compound filtering and periodic cache eviction.
"""

from .config import TrackerConfig, load_config
from .engine import ProductEngine

__all__ = ["ProductEngine", "TrackerConfig", "load_config"]
