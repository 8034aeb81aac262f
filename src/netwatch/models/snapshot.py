"""
Published statistics snapshots.

Snapshots are what consumers (dashboards, the CLI, exporters) see. They are
frozen and hold tuples only, so a snapshot can be handed to any thread
without copying.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

HistoryPoint = Tuple[float, float]
"""(timestamp, rate) pair in the history ring."""


@dataclass(frozen=True)
class DirectionStats:
    """Rates and totals for one direction (receive or transmit)."""
    instant_rate: float = 0.0
    """Bytes per second over the latest tick."""
    average_rate: float = 0.0
    """Bytes per second over the averaging window."""
    peak_rate: float = 0.0
    """Highest instantaneous rate since the last reset."""
    window_peak_rate: float = 0.0
    """Highest instantaneous rate among entries still in the window."""
    min_rate: float = 0.0
    packet_rate: float = 0.0
    average_packet_rate: float = 0.0
    cumulative_bytes: int = 0
    cumulative_packets: int = 0
    errors: int = 0
    drops: int = 0
    history: Tuple[HistoryPoint, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InterfaceSnapshot:
    name: str
    rx: DirectionStats = field(default_factory=DirectionStats)
    tx: DirectionStats = field(default_factory=DirectionStats)
    samples: int = 0
    """Number of deltas recorded since the last reset."""
    window_entries: int = 0
    last_update: Optional[float] = None
    stale: bool = False
    """True when the latest read of this interface failed."""
    error: Optional[str] = None

    @property
    def total_rate(self) -> float:
        return self.rx.instant_rate + self.tx.instant_rate

    @property
    def total_packet_rate(self) -> float:
        return self.rx.packet_rate + self.tx.packet_rate


@dataclass(frozen=True)
class MonitorSnapshot:
    """Everything the scheduler published at the end of one tick."""
    version: int
    timestamp: float
    interfaces: Tuple[InterfaceSnapshot, ...] = field(default_factory=tuple)
    effective_interval: float = 0.0
    high_performance: bool = False

    def get(self, name: str) -> Optional[InterfaceSnapshot]:
        for snap in self.interfaces:
            if snap.name == name:
                return snap
        return None

    def as_dict(self) -> Dict[str, InterfaceSnapshot]:
        return {snap.name: snap for snap in self.interfaces}

    @property
    def total_rate(self) -> float:
        return sum(snap.total_rate for snap in self.interfaces if not snap.stale)
