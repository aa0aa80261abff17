"""Monitoring Package - Operation timing."""

from .performance import PerformanceMonitor

__all__ = ["PerformanceMonitor"]
