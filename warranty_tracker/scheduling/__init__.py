"""Scheduling Package - Timers, debounce and throttle primitives."""

from .scheduler import (
    AsyncioScheduler,
    Debouncer,
    ManualScheduler,
    PeriodicTask,
    Scheduler,
    Throttler,
)

__all__ = [
    "AsyncioScheduler",
    "Debouncer",
    "ManualScheduler",
    "PeriodicTask",
    "Scheduler",
    "Throttler",
]
