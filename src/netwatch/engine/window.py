"""
Time-bounded rolling window of counter deltas.

Entries live in preallocated parallel arrays indexed by a wrapping cursor.
Running sums make every insert amortized O(1): the entries that fall out of
the window are subtracted as they are evicted instead of rescanning.
"""
import math
from collections import deque
from typing import Deque, List, Optional, Tuple

WindowEntry = Tuple[float, int, int, float]
"""(timestamp, delta_bytes, delta_packets, elapsed)"""


class RateWindow:
    """
    Ring buffer of (timestamp, delta_bytes, delta_packets, elapsed) entries
    covering the last `window` seconds.

    After any insert at time t, no entry with timestamp <= t - window
    remains. `capacity` bounds memory when samples arrive faster than
    expected; the oldest entry is then overwritten.
    """

    def __init__(self, window: float, capacity: int):
        if window <= 0:
            raise ValueError("window must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.window = float(window)
        self.capacity = capacity

        self._timestamps: List[float] = [0.0] * capacity
        self._bytes: List[int] = [0] * capacity
        self._packets: List[int] = [0] * capacity
        self._elapsed: List[float] = [0.0] * capacity
        self._head = 0
        self._count = 0

        self._sum_bytes = 0
        self._sum_packets = 0
        self._sum_elapsed = 0.0

        # (timestamp, rate) pairs with strictly decreasing rates; front is the max
        self._peaks: Deque[Tuple[float, float]] = deque()

    def __len__(self) -> int:
        return self._count

    @property
    def oldest_timestamp(self) -> Optional[float]:
        if not self._count:
            return None
        return self._timestamps[self._head]

    @property
    def sum_bytes(self) -> int:
        return self._sum_bytes

    @property
    def sum_packets(self) -> int:
        return self._sum_packets

    @property
    def sum_elapsed(self) -> float:
        return self._sum_elapsed

    def add(self, timestamp: float, delta_bytes: int, delta_packets: int, elapsed: float) -> float:
        """Insert one entry and return its instantaneous byte rate."""
        if elapsed <= 0:
            raise ValueError("elapsed must be positive")
        if delta_bytes < 0 or delta_packets < 0:
            raise ValueError("deltas cannot be negative")

        self._evict_older_than(timestamp - self.window)
        if self._count == self.capacity:
            self._evict_oldest()

        index = (self._head + self._count) % self.capacity
        self._timestamps[index] = timestamp
        self._bytes[index] = delta_bytes
        self._packets[index] = delta_packets
        self._elapsed[index] = elapsed
        self._count += 1

        self._sum_bytes += delta_bytes
        self._sum_packets += delta_packets
        self._sum_elapsed += elapsed

        rate = delta_bytes / elapsed
        while self._peaks and self._peaks[-1][1] <= rate:
            self._peaks.pop()
        self._peaks.append((timestamp, rate))
        return rate

    def _evict_older_than(self, cutoff: float) -> None:
        while self._count and self._timestamps[self._head] <= cutoff:
            self._evict_oldest()

    def _evict_oldest(self) -> None:
        head = self._head
        evicted_ts = self._timestamps[head]
        self._sum_bytes -= self._bytes[head]
        self._sum_packets -= self._packets[head]
        self._sum_elapsed -= self._elapsed[head]
        self._head = (head + 1) % self.capacity
        self._count -= 1

        while self._peaks and self._peaks[0][0] <= evicted_ts:
            self._peaks.popleft()

        if self._count == 0:
            self._sum_elapsed = 0.0
        elif self._head == 0:
            # Re-sum once per lap of the arena to stop float drift
            self._sum_elapsed = math.fsum(self._elapsed[i % self.capacity]
                                          for i in range(self._head, self._head + self._count))

    @property
    def average_rate(self) -> float:
        """Bytes per second over the entries in the window."""
        if self._sum_elapsed <= 0:
            return 0.0
        return max(0.0, self._sum_bytes / self._sum_elapsed)

    @property
    def average_packet_rate(self) -> float:
        if self._sum_elapsed <= 0:
            return 0.0
        return max(0.0, self._sum_packets / self._sum_elapsed)

    @property
    def window_peak(self) -> float:
        """Largest instantaneous byte rate among the entries in the window."""
        if not self._peaks:
            return 0.0
        return self._peaks[0][1]

    def entries(self) -> List[WindowEntry]:
        """Copy of the entries, oldest first."""
        result = []
        for i in range(self._head, self._head + self._count):
            index = i % self.capacity
            result.append((self._timestamps[index], self._bytes[index],
                           self._packets[index], self._elapsed[index]))
        return result

    def clear(self) -> None:
        self._head = 0
        self._count = 0
        self._sum_bytes = 0
        self._sum_packets = 0
        self._sum_elapsed = 0.0
        self._peaks.clear()
