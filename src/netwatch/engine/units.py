"""
Traffic unit formatting.

Pure functions, safe to share with any rendering layer.
"""
from enum import Enum
from typing import Sequence, Tuple

BIT_UNITS = ("bit", "kbit", "Mbit", "Gbit", "Tbit")
BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


class TrafficUnit(Enum):
    """Display unit; the value is the one-letter code used on the command line."""
    HUMAN_BIT = "h"
    HUMAN_BYTE = "H"
    BIT = "b"
    BYTE = "B"
    KILOBIT = "k"
    KILOBYTE = "K"
    MEGABIT = "m"
    MEGABYTE = "M"
    GIGABIT = "g"
    GIGABYTE = "G"

    @classmethod
    def from_string(cls, code: str) -> "TrafficUnit":
        try:
            return cls(code)
        except ValueError:
            codes = ", ".join(unit.value for unit in cls)
            raise ValueError(f"Unknown traffic unit {code!r} (expected one of {codes})") from None

    def next(self) -> "TrafficUnit":
        """The unit after this one, cycling back to HUMAN_BIT."""
        members = list(TrafficUnit)
        return members[(members.index(self) + 1) % len(members)]

    @property
    def is_bits(self) -> bool:
        return self.value.islower()


# unit -> (divisor applied to the value in its base unit, suffix)
_FIXED: dict = {
    TrafficUnit.KILOBIT: (1000, "kbit"),
    TrafficUnit.KILOBYTE: (1024, "KB"),
    TrafficUnit.MEGABIT: (1000 ** 2, "Mbit"),
    TrafficUnit.MEGABYTE: (1024 ** 2, "MB"),
    TrafficUnit.GIGABIT: (1000 ** 3, "Gbit"),
    TrafficUnit.GIGABYTE: (1024 ** 3, "GB"),
}


def _scale(value: float, units: Sequence[str], divisor: float) -> Tuple[float, str]:
    index = 0
    while value >= divisor and index < len(units) - 1:
        value /= divisor
        index += 1
    return value, units[index]


def _precision(value: float) -> int:
    if value >= 100:
        return 0
    if value >= 10:
        return 1
    return 2


def format_total(num_bytes: float, unit: TrafficUnit = TrafficUnit.HUMAN_BYTE) -> str:
    """Format a byte count in the given unit, e.g. '1.50 MB'."""
    num_bytes = max(0.0, float(num_bytes))
    value = num_bytes * 8 if unit.is_bits else num_bytes

    if unit is TrafficUnit.HUMAN_BIT:
        scaled, suffix = _scale(value, BIT_UNITS, 1000.0)
    elif unit is TrafficUnit.HUMAN_BYTE:
        scaled, suffix = _scale(value, BYTE_UNITS, 1024.0)
    elif unit is TrafficUnit.BIT:
        return f"{int(value)} bit"
    elif unit is TrafficUnit.BYTE:
        return f"{int(value)} B"
    else:
        divisor, suffix = _FIXED[unit]
        return f"{value / divisor:.2f} {suffix}"

    return f"{scaled:.{_precision(scaled)}f} {suffix}"


def format_rate(bytes_per_second: float, unit: TrafficUnit = TrafficUnit.HUMAN_BIT) -> str:
    """Format a byte rate in the given unit, e.g. '12.5 Mbit/s'."""
    return f"{format_total(bytes_per_second, unit)}/s"


def format_number(num: int) -> str:
    """Integer with thousands separators: 1234567 -> '1,234,567'."""
    return f"{int(num):,}"
