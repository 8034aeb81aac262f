"""
Fixed-capacity rate history for graphing.
"""
from typing import List, Optional, Tuple

from ..models.snapshot import HistoryPoint

DEFAULT_HISTORY_CAPACITY = 120


class HistoryRing:
    """
    Ring of (timestamp, rate) points, oldest overwritten when full.

    With a `resolution` (seconds), points closer than that to the newest
    point are averaged into it, so the ring spans the same time range no
    matter how fast the scheduler ticks.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY, resolution: Optional[float] = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.resolution = resolution
        self._points: List[HistoryPoint] = [(0.0, 0.0)] * capacity
        self._cursor = 0
        self._count = 0
        self._merged = 0

    def __len__(self) -> int:
        return self._count

    def append(self, timestamp: float, rate: float) -> None:
        if self._count and self.resolution:
            last_index = (self._cursor - 1) % self.capacity
            last_ts, last_rate = self._points[last_index]
            if timestamp - last_ts < self.resolution:
                self._merged += 1
                merged_rate = last_rate + (rate - last_rate) / (self._merged + 1)
                self._points[last_index] = (last_ts, merged_rate)
                return

        self._points[self._cursor] = (timestamp, rate)
        self._cursor = (self._cursor + 1) % self.capacity
        self._count = min(self._count + 1, self.capacity)
        self._merged = 0

    @property
    def latest(self) -> Optional[HistoryPoint]:
        if not self._count:
            return None
        return self._points[(self._cursor - 1) % self.capacity]

    def points(self) -> Tuple[HistoryPoint, ...]:
        """Points oldest first."""
        start = (self._cursor - self._count) % self.capacity
        return tuple(self._points[(start + i) % self.capacity] for i in range(self._count))

    def rates(self) -> List[float]:
        return [rate for _, rate in self.points()]

    def clear(self) -> None:
        self._cursor = 0
        self._count = 0
        self._merged = 0
