"""Lookup latency tracking for the /health endpoint.

``LookupLatencyTracker`` keeps a rolling window of the most recent range
lookup durations so ``/health`` can report ``avg_lookup_ms`` and
``p99_lookup_ms`` without storing unbounded history. It is observability
only: no lookup result is retained.
"""

from __future__ import annotations

from collections import deque

from pwngate.constants import LATENCY_WINDOW


class LookupLatencyTracker:
    """Rolling window of lookup latency measurements (last *window* samples).

    Safe for single-threaded asyncio use (all access from the event loop).

    Usage::

        tracker = LookupLatencyTracker()
        tracker.record(84.2)
        avg = tracker.avg_ms
        p99 = tracker.p99_ms     # 0.0 until 10+ samples
    """

    def __init__(self, window: int = LATENCY_WINDOW) -> None:
        self._times: deque[float] = deque(maxlen=window)
        self._failures: int = 0

    def record(self, duration_ms: float, failed: bool = False) -> None:
        """Append a latency sample; the oldest sample is evicted when full."""
        self._times.append(duration_ms)
        if failed:
            self._failures += 1

    @property
    def avg_ms(self) -> float:
        if not self._times:
            return 0.0
        return sum(self._times) / len(self._times)

    @property
    def p99_ms(self) -> float:
        """99th percentile of the window; 0.0 with fewer than 10 samples."""
        if len(self._times) < 10:
            return 0.0
        sorted_times = sorted(self._times)
        idx = max(0, int(len(sorted_times) * 0.99) - 1)
        return sorted_times[idx]

    @property
    def count(self) -> int:
        """Number of samples currently in the window."""
        return len(self._times)

    @property
    def failures(self) -> int:
        """Total failed lookups since startup."""
        return self._failures
