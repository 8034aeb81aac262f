"""
Counter delta engine.

Interface counters are unsigned and monotonic with two discontinuities:

- wraparound: the counter passed its maximum and restarted from zero.
  delta = (max + 1 - previous) + current
- reset: the interface was reset or recreated and its counter restarted.
  delta = current

A drop is a wraparound when the gap left after it, max - (previous - current),
is at most wrap_tolerance * (max + 1) for some candidate counter width. The
gap equals the number of units that would have been counted minus one, so
the tolerance is the largest share of the counter range one sampling interval
may plausibly cover. Anything else is a reset. Naive subtraction would either
go negative or report a huge spike after an interface flap.
"""
from typing import Dict, List, Optional, Tuple

from ..models.sample import COUNTER_FIELDS, CounterDelta, InterfaceSample

MAX_32 = (1 << 32) - 1
MAX_64 = (1 << 64) - 1

DEFAULT_WRAP_TOLERANCE = 0.10

NORMAL = "normal"
WRAP = "wrap"
RESET = "reset"


def candidate_widths(previous: int, bits: int, detect_32bit: bool = False) -> Tuple[int, ...]:
    """
    Counter widths a drop from `previous` can be a wraparound of.

    Only the width the platform reports is tried. With `detect_32bit`, a
    64-bit platform whose previous value fits in 32 bits also tries 32 first,
    for drivers that still count in 32 bits. That mode turns a real reset
    from just under 2**32 into a wrap, so it is off unless asked for.
    """
    if bits == 32:
        return (32,)
    if detect_32bit and previous <= MAX_32:
        return (32, 64)
    return (64,)


def counter_delta(previous: int, current: int, bits: int = 64,
                  tolerance: float = DEFAULT_WRAP_TOLERANCE,
                  detect_32bit: bool = False) -> Tuple[int, str]:
    """Return (delta, kind) for one counter; kind is NORMAL, WRAP or RESET."""
    if current >= previous:
        return current - previous, NORMAL

    for width in candidate_widths(previous, bits, detect_32bit):
        limit = (1 << width) - 1
        if previous > limit:
            continue
        gap = limit - (previous - current)
        if gap <= tolerance * (limit + 1):
            return (limit + 1 - previous) + current, WRAP

    return current, RESET


class CounterDeltaEngine:
    """Turns pairs of samples into validated, non-negative deltas."""

    def __init__(self, wrap_tolerance: float = DEFAULT_WRAP_TOLERANCE, detect_32bit: bool = False):
        if not 0.0 < wrap_tolerance < 1.0:
            raise ValueError("wrap_tolerance must be between 0 and 1")
        self.wrap_tolerance = wrap_tolerance
        self.detect_32bit = detect_32bit

    def delta(self, previous: InterfaceSample, current: InterfaceSample) -> Optional[CounterDelta]:
        """
        Compute the delta from `previous` to `current`.

        Returns None when no time elapsed (duplicate or out-of-order sample),
        so callers never divide by zero.
        """
        if previous.name != current.name:
            raise ValueError(f"Samples belong to different interfaces: "
                             f"{previous.name} != {current.name}")

        elapsed = current.timestamp - previous.timestamp
        if elapsed <= 0:
            return None

        bits = current.counter_bits
        values: Dict[str, int] = {}
        wrapped: List[str] = []
        reset: List[str] = []
        for field in COUNTER_FIELDS:
            value, kind = counter_delta(
                getattr(previous, field), getattr(current, field), bits,
                self.wrap_tolerance, self.detect_32bit)
            values[field] = value
            if kind == WRAP:
                wrapped.append(field)
            elif kind == RESET:
                reset.append(field)

        return CounterDelta(
            name=current.name,
            elapsed=elapsed,
            timestamp=current.timestamp,
            wrapped=tuple(wrapped),
            reset=tuple(reset),
            **values,
        )
