"""
Performance monitoring for signal handling.

Every host signal is handled synchronously on the host's loop, so slow
handling shows up directly as client stutter. The monitor records how long
named operations take and warns when one exceeds its threshold.

Usage:
    monitor = PerformanceMonitor()

    with monitor.measure("orchestrator.handle"):
        ...

    monitor.log_report()
"""

import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Execution time statistics per named operation.

    Owned by whoever drives the tracker; there is no shared global
    instance. Disabled monitors cost one attribute check per measurement.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._counts: Dict[str, int] = defaultdict(int)
        self._totals: Dict[str, float] = defaultdict(float)
        self._minimums: Dict[str, float] = {}
        self._maximums: Dict[str, float] = {}
        self._thresholds: Dict[str, float] = {}

    @contextmanager
    def measure(self, name: str):
        """
        Time the enclosed block under the given operation name.

        Args:
            name: Operation name for tracking
        """
        if not self.enabled:
            yield
            return

        start_time = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000.0
            self._record(name, elapsed_ms)

    def _record(self, name: str, elapsed_ms: float):
        self._counts[name] += 1
        self._totals[name] += elapsed_ms
        self._minimums[name] = min(elapsed_ms, self._minimums.get(name, elapsed_ms))
        self._maximums[name] = max(elapsed_ms, self._maximums.get(name, elapsed_ms))

        threshold = self._thresholds.get(name)
        if threshold is not None and elapsed_ms > threshold:
            logger.warning(
                f"PERFORMANCE: '{name}' exceeded threshold: "
                f"{elapsed_ms:.2f}ms > {threshold:.2f}ms"
            )

    def set_threshold(self, name: str, threshold_ms: float):
        """Warn whenever the named operation takes longer than threshold_ms."""
        self._thresholds[name] = threshold_ms
        logger.debug(f"Set performance threshold for '{name}': {threshold_ms}ms")

    def report(self) -> Dict[str, Dict[str, float]]:
        """
        Statistics for every operation measured so far.

        Returns:
            {name: {'count', 'total_ms', 'avg_ms', 'min_ms', 'max_ms'[, 'threshold_ms']}}
        """
        report = {}
        for name, count in self._counts.items():
            stats = {
                'count': count,
                'total_ms': self._totals[name],
                'avg_ms': self._totals[name] / count,
                'min_ms': self._minimums[name],
                'max_ms': self._maximums[name],
            }
            if name in self._thresholds:
                stats['threshold_ms'] = self._thresholds[name]
            report[name] = stats
        return report

    def report_sorted(self, sort_by: str = 'total_ms', limit: Optional[int] = None) -> List[Tuple[str, Dict[str, float]]]:
        sorted_items = sorted(
            self.report().items(),
            key=lambda item: item[1].get(sort_by, 0),
            reverse=True
        )
        if limit:
            sorted_items = sorted_items[:limit]
        return sorted_items

    def clear(self):
        """Forget all recorded measurements; thresholds are kept."""
        self._counts.clear()
        self._totals.clear()
        self._minimums.clear()
        self._maximums.clear()
        logger.debug("Performance metrics cleared")

    def log_report(self, sort_by: str = 'total_ms', limit: int = 10):
        sorted_report = self.report_sorted(sort_by=sort_by, limit=limit)

        if not sorted_report:
            logger.info("No performance metrics recorded")
            return

        logger.info(f"Performance Report (Top {limit} by {sort_by})")
        for name, stats in sorted_report:
            logger.info(
                f"{name:30s} | "
                f"Count: {stats['count']:6d} | "
                f"Total: {stats['total_ms']:8.2f}ms | "
                f"Avg: {stats['avg_ms']:6.3f}ms | "
                f"Max: {stats['max_ms']:6.3f}ms"
            )
