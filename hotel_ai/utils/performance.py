"""
Performance Monitoring
Per-request step timings plus process-wide latency histograms
"""

import time
import uuid
from collections import defaultdict, deque
from contextlib import contextmanager
from typing import Deque, Dict, List, Optional

import numpy as np
from loguru import logger


class PerformanceMonitor:
    """
    Lightweight in-process latency tracker

    Keeps the most recent durations per operation and reports
    count / mean / p50 / p95 / max.
    """

    def __init__(self, window: int = 500):
        self.window = window
        self.counters: Dict[str, int] = defaultdict(int)
        self.histograms: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=self.window))

    def record(self, operation: str, duration_ms: float):
        self.counters[operation] += 1
        self.histograms[operation].append(duration_ms)

    def increment(self, name: str, amount: int = 1):
        self.counters[name] += amount

    def summary(self) -> Dict[str, Dict[str, float]]:
        report = {}
        for operation, durations in self.histograms.items():
            if not durations:
                continue
            values = np.asarray(durations, dtype=np.float64)
            report[operation] = {
                "count": self.counters[operation],
                "mean_ms": round(float(values.mean()), 1),
                "p50_ms": round(float(np.percentile(values, 50)), 1),
                "p95_ms": round(float(np.percentile(values, 95)), 1),
                "max_ms": round(float(values.max()), 1),
            }
        for name, count in self.counters.items():
            if name not in report:
                report[name] = {"count": count}
        return report

    def reset(self):
        self.counters.clear()
        self.histograms.clear()


class RequestTimer:
    """
    Step timings for one request

    Usage:
        timer = RequestTimer(monitor)
        with timer.step("retrieve"):
            result = await engine.search(query)
        timer.finish("chat")
    """

    def __init__(self, monitor: Optional[PerformanceMonitor] = None, request_id: Optional[str] = None):
        self.monitor = monitor
        self.request_id = request_id or uuid.uuid4().hex[:8]
        self.started_at = time.perf_counter()
        self.steps: Dict[str, float] = {}

    @contextmanager
    def step(self, name: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = (time.perf_counter() - start) * 1000
            self.steps[name] = round(duration, 2)
            if self.monitor is not None:
                self.monitor.record(name, duration)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)

    def finish(self, operation: str, notes: Optional[List[str]] = None) -> int:
        total = self.elapsed_ms()
        if self.monitor is not None:
            self.monitor.record(operation, total)
        steps = ", ".join(f"{k}={v:.0f}ms" for k, v in self.steps.items())
        suffix = f" [{'; '.join(notes)}]" if notes else ""
        logger.info(f"[{self.request_id}] {operation}: {total}ms ({steps}){suffix}")
        return total
