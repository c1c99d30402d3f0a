"""
Utility helpers
"""

from .performance import PerformanceMonitor, RequestTimer

__all__ = ["PerformanceMonitor", "RequestTimer"]
