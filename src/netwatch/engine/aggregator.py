"""
Per-interface rolling statistics.

The aggregator is owned by the scheduler thread. Consumers never touch it
directly; they read the frozen InterfaceSnapshot objects it returns.
"""
import logging
import math
from typing import Dict, List, Optional

from ..models.sample import CounterDelta
from ..models.snapshot import DirectionStats, InterfaceSnapshot
from ..validation import MIN_REFRESH_INTERVAL_MS
from .history import DEFAULT_HISTORY_CAPACITY, HistoryRing
from .window import RateWindow

logger = logging.getLogger(__name__)


def window_capacity(average_window: float) -> int:
    """Largest number of entries a window can hold at the fastest refresh rate."""
    return int(math.ceil(average_window * 1000.0 / MIN_REFRESH_INTERVAL_MS)) + 1


class _DirectionTracker:
    """Statistics for one direction of one interface."""

    def __init__(self, average_window: float, history_capacity: int, history_resolution: Optional[float]):
        self.window = RateWindow(average_window, window_capacity(average_window))
        self.history = HistoryRing(history_capacity, history_resolution)
        self.reset()

    def reset(self) -> None:
        self.window.clear()
        self.history.clear()
        self.instant_rate = 0.0
        self.packet_rate = 0.0
        self.peak_rate = 0.0
        self.min_rate = 0.0
        self.cumulative_bytes = 0
        self.cumulative_packets = 0
        self.errors = 0
        self.drops = 0
        self.samples = 0

    def record(self, timestamp: float, elapsed: float, nbytes: int, npackets: int,
               errors: int, drops: int) -> None:
        rate = self.window.add(timestamp, nbytes, npackets, elapsed)
        self.instant_rate = rate
        self.packet_rate = npackets / elapsed
        self.cumulative_bytes += nbytes
        self.cumulative_packets += npackets
        self.errors += errors
        self.drops += drops
        self.history.append(timestamp, rate)

        # The first delta often spans a partial interval; keep it out of min/peak
        if self.samples > 0:
            if rate > self.peak_rate:
                self.peak_rate = rate
            if rate > 0 and (self.min_rate == 0 or rate < self.min_rate):
                self.min_rate = rate
        self.samples += 1

    def stats(self) -> DirectionStats:
        return DirectionStats(
            instant_rate=self.instant_rate,
            average_rate=self.window.average_rate,
            peak_rate=self.peak_rate,
            window_peak_rate=self.window.window_peak,
            min_rate=self.min_rate,
            packet_rate=self.packet_rate,
            average_packet_rate=self.window.average_packet_rate,
            cumulative_bytes=self.cumulative_bytes,
            cumulative_packets=self.cumulative_packets,
            errors=self.errors,
            drops=self.drops,
            history=self.history.points(),
        )


class _InterfaceStats:
    def __init__(self, name: str, average_window: float, history_capacity: int,
                 history_resolution: Optional[float]):
        self.name = name
        self.rx = _DirectionTracker(average_window, history_capacity, history_resolution)
        self.tx = _DirectionTracker(average_window, history_capacity, history_resolution)
        self.last_update: Optional[float] = None

    def snapshot(self, stale: bool = False, error: Optional[str] = None) -> InterfaceSnapshot:
        return InterfaceSnapshot(
            name=self.name,
            rx=self.rx.stats(),
            tx=self.tx.stats(),
            samples=self.rx.samples,
            window_entries=len(self.rx.window),
            last_update=self.last_update,
            stale=stale,
            error=error,
        )


class StatisticsAggregator:
    """
    Rolling rate statistics for a set of interfaces.

    record() feeds one CounterDelta into the receive and transmit windows of
    an interface and returns the resulting snapshot. Interfaces are created
    on first record and live until remove().
    """

    def __init__(self, average_window: float, history_capacity: int = DEFAULT_HISTORY_CAPACITY,
                 history_resolution: Optional[float] = None):
        if average_window <= 0:
            raise ValueError("average_window must be positive")
        self.average_window = float(average_window)
        self.history_capacity = history_capacity
        self.history_resolution = history_resolution
        self._interfaces: Dict[str, _InterfaceStats] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._interfaces

    def names(self) -> List[str]:
        return sorted(self._interfaces)

    def _get(self, name: str) -> _InterfaceStats:
        try:
            return self._interfaces[name]
        except KeyError:
            raise KeyError(f"Unknown interface: {name}") from None

    def record(self, name: str, delta: CounterDelta) -> InterfaceSnapshot:
        if delta.name != name:
            raise ValueError(f"Delta for {delta.name} recorded as {name}")
        if delta.elapsed <= 0:
            raise ValueError("elapsed must be positive")

        stats = self._interfaces.get(name)
        if stats is None:
            stats = _InterfaceStats(name, self.average_window, self.history_capacity,
                                    self.history_resolution)
            self._interfaces[name] = stats
            logger.debug(f"Tracking statistics for {name}")

        stats.rx.record(delta.timestamp, delta.elapsed, delta.bytes_recv, delta.packets_recv,
                        delta.errors_in, delta.drops_in)
        stats.tx.record(delta.timestamp, delta.elapsed, delta.bytes_sent, delta.packets_sent,
                        delta.errors_out, delta.drops_out)
        stats.last_update = delta.timestamp
        return stats.snapshot()

    def snapshot(self, name: str, stale: bool = False, error: Optional[str] = None) -> InterfaceSnapshot:
        return self._get(name).snapshot(stale=stale, error=error)

    def snapshot_all(self) -> Dict[str, InterfaceSnapshot]:
        return {name: stats.snapshot() for name, stats in self._interfaces.items()}

    def reset(self, name: str) -> None:
        """Clear windows, peaks and totals of one interface."""
        stats = self._get(name)
        stats.rx.reset()
        stats.tx.reset()
        stats.last_update = None

    def remove(self, name: str) -> None:
        del self._interfaces[name]
        logger.debug(f"Dropped statistics for {name}")

    def rate_history(self, name: str, direction: str = 'rx') -> List[float]:
        """Rates in the history ring of one direction, oldest first."""
        stats = self._get(name)
        if direction not in ('rx', 'tx'):
            raise ValueError(f"direction must be 'rx' or 'tx', got {direction!r}")
        return getattr(stats, direction).history.rates()
