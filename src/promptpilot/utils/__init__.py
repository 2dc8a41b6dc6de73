"""Utility modules: scheduling helpers, instrumentation and clocks."""

from .clock import Clock, now_millis
from .performance import MeasureStats, PerformanceMonitor
from .rate_limit import batch_process, debounce, delay, memoize, throttle

__all__ = [
    "Clock",
    "MeasureStats",
    "PerformanceMonitor",
    "batch_process",
    "debounce",
    "delay",
    "memoize",
    "now_millis",
    "throttle",
]
