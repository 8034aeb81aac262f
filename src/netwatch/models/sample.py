# Counter sample data models
"""
Raw counter samples and the deltas computed between them.

THESE MODELS ARE IMMUTABLE. A sample is taken once by a reader and never
modified; the delta engine builds new CounterDelta objects from pairs of
samples.
"""

from dataclasses import dataclass, field
from typing import Tuple

# Counter fields in the order the readers fill them
COUNTER_FIELDS: Tuple[str, ...] = (
    'bytes_recv',
    'bytes_sent',
    'packets_recv',
    'packets_sent',
    'errors_in',
    'errors_out',
    'drops_in',
    'drops_out',
)


@dataclass(frozen=True)
class InterfaceSample:
    """
    One reading of an interface's raw counters.

    Counters are unsigned and monotonic except for wraparound and resets,
    which the delta engine resolves.
    """
    name: str

    timestamp: float
    """Capture time in monotonic seconds (time.monotonic())."""

    bytes_recv: int = 0
    bytes_sent: int = 0
    packets_recv: int = 0
    packets_sent: int = 0
    errors_in: int = 0
    errors_out: int = 0
    drops_in: int = 0
    drops_out: int = 0

    counter_bits: int = 64
    """Width the platform reports its counters in (32 or 64)."""

    def __post_init__(self):
        if self.counter_bits not in (32, 64):
            raise ValueError(f"counter_bits must be 32 or 64, got {self.counter_bits}")
        for name in COUNTER_FIELDS:
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @property
    def counter_max(self) -> int:
        return (1 << self.counter_bits) - 1

    def counters(self) -> Tuple[int, ...]:
        return tuple(getattr(self, name) for name in COUNTER_FIELDS)


@dataclass(frozen=True)
class CounterDelta:
    """
    Validated, non-negative difference between two samples of one interface.
    """
    name: str
    elapsed: float
    """Seconds between the two samples, always > 0."""

    timestamp: float
    """Timestamp of the newer sample."""

    bytes_recv: int = 0
    bytes_sent: int = 0
    packets_recv: int = 0
    packets_sent: int = 0
    errors_in: int = 0
    errors_out: int = 0
    drops_in: int = 0
    drops_out: int = 0

    wrapped: Tuple[str, ...] = field(default_factory=tuple)
    """Counter fields that wrapped around their maximum."""

    reset: Tuple[str, ...] = field(default_factory=tuple)
    """Counter fields that restarted from zero (interface reset/recreated)."""

    @property
    def total_bytes(self) -> int:
        return self.bytes_recv + self.bytes_sent

    @property
    def total_packets(self) -> int:
        return self.packets_recv + self.packets_sent

    @property
    def has_errors(self) -> bool:
        return bool(self.errors_in or self.errors_out or self.drops_in or self.drops_out)
