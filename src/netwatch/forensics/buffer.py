"""
Fixed-capacity forensics event log with overload throttling.
"""
import logging
import threading
import time
from typing import Callable, List, Optional

from ..models.events import ForensicsEvent

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000
DEFAULT_RATE_CEILING = 100
# Critical events may exceed the ceiling, up to this multiple of it
HARD_CEILING_FACTOR = 5


class EventRingBuffer:
    """
    Ring of ForensicsEvent objects.

    push() is O(1) and overwrites the oldest event once the buffer is full.
    At most `rate_ceiling` events are accepted per one-second bucket; critical
    events keep being accepted up to `rate_ceiling * 5`. Everything above
    that is dropped and counted.

    The scheduler thread pushes while consumers peek or drain from their own
    threads. Every operation holds the buffer lock; peek() and drain() return
    copies taken under it.
    """

    def __init__(self,
                 capacity: int = DEFAULT_CAPACITY,
                 rate_ceiling: int = DEFAULT_RATE_CEILING,
                 clock: Callable[[], float] = time.monotonic):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if rate_ceiling < 1:
            raise ValueError("rate_ceiling must be at least 1")
        self._full_capacity = capacity
        self.rate_ceiling = rate_ceiling
        self.hard_ceiling = rate_ceiling * HARD_CEILING_FACTOR
        self._clock = clock
        self._lock = threading.RLock()

        self._slots: List[Optional[ForensicsEvent]] = [None] * capacity
        self._cursor = 0
        self._count = 0
        self.high_performance = False

        self._bucket: Optional[int] = None
        self._bucket_accepted = 0
        self._bucket_arrivals = 0
        self._previous_arrivals = 0

        self.accepted = 0
        self.dropped = 0

    @property
    def capacity(self) -> int:
        """Current effective capacity (halved in high-performance mode)."""
        with self._lock:
            return len(self._slots)

    def __len__(self) -> int:
        with self._lock:
            return self._count

    def _roll_bucket(self) -> None:
        bucket = int(self._clock())
        if bucket != self._bucket:
            # Arrivals of the bucket just finished, or zero after a quiet gap
            if self._bucket is not None and bucket == self._bucket + 1:
                self._previous_arrivals = self._bucket_arrivals
            else:
                self._previous_arrivals = 0
            self._bucket = bucket
            self._bucket_accepted = 0
            self._bucket_arrivals = 0

    def push(self, event: ForensicsEvent) -> bool:
        """Store an event; returns False when it was throttled."""
        with self._lock:
            self._roll_bucket()
            self._bucket_arrivals += 1

            if self._bucket_accepted >= self.rate_ceiling:
                if not event.is_critical or self._bucket_accepted >= self.hard_ceiling:
                    self.dropped += 1
                    return False

            self._slots[self._cursor] = event
            self._cursor = (self._cursor + 1) % len(self._slots)
            self._count = min(self._count + 1, len(self._slots))
            self._bucket_accepted += 1
            self.accepted += 1
            return True

    def arrival_rate(self) -> int:
        """Events offered per second: the larger of the last and current bucket."""
        with self._lock:
            self._roll_bucket()
            return max(self._previous_arrivals, self._bucket_arrivals)

    def peek(self, limit: Optional[int] = None) -> List[ForensicsEvent]:
        """Events most recent first, without removing them."""
        with self._lock:
            size = len(self._slots)
            count = self._count if limit is None else min(limit, self._count)
            return [self._slots[(self._cursor - 1 - i) % size] for i in range(count)]

    def drain(self) -> List[ForensicsEvent]:
        """Remove and return every event, most recent first."""
        with self._lock:
            events = self.peek()
            self._reset_slots(len(self._slots))
            return events

    def clear(self) -> None:
        with self._lock:
            self._reset_slots(len(self._slots))

    def _reset_slots(self, capacity: int) -> None:
        self._slots = [None] * capacity
        self._cursor = 0
        self._count = 0

    def set_high_performance_mode(self, enabled: bool) -> None:
        """Halve the capacity while enabled, keeping the newest events."""
        with self._lock:
            if enabled == self.high_performance:
                return
            self.high_performance = enabled
            capacity = max(1, self._full_capacity // 2) if enabled else self._full_capacity

            # Oldest first, trimmed to the new capacity
            kept = list(reversed(self.peek(capacity)))
            self._reset_slots(capacity)
            for index, event in enumerate(kept):
                self._slots[index] = event
            self._count = len(kept)
            self._cursor = self._count % capacity
        logger.info(f"Event buffer capacity set to {capacity}")
