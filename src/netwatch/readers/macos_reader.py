"""
macOS counter reader backed by psutil.

psutil reads the 64-bit interface statistics (if_data64) through sysctl.
Counters are requested with nowrap=False so the delta engine sees the raw
values and does its own wraparound/reset handling.
"""
import logging
import time
from typing import Callable, Dict, Iterable, Set

import psutil

from ..errors import DeviceNotFound, PermissionDenied, ReaderError
from ..models.sample import InterfaceSample
from ..validation import validate_interface_name
from .base import ICounterReader, ReadResult, is_virtual_interface

logger = logging.getLogger(__name__)


class MacOSReader(ICounterReader):
    """Per-device counters from psutil.net_io_counters(pernic=True)."""

    name = "macos"
    counter_bits = 64

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        super().__init__(clock)

    def is_available(self) -> bool:
        try:
            return bool(psutil.net_io_counters(pernic=True))
        except (psutil.Error, OSError) as e:
            logger.debug(f"psutil interface statistics unavailable: {e}")
            return False

    def _counters(self) -> Dict[str, object]:
        try:
            return psutil.net_io_counters(pernic=True, nowrap=False)
        except psutil.AccessDenied as e:
            raise PermissionDenied("net_io_counters", str(e)) from e
        except (psutil.Error, OSError) as e:
            raise ReaderError(f"Failed to query interface statistics: {e}") from e

    def _to_sample(self, name: str, timestamp: float, stats) -> InterfaceSample:
        if stats is None:
            raise DeviceNotFound(name)
        return InterfaceSample(
            name=name,
            timestamp=timestamp,
            bytes_recv=stats.bytes_recv,
            bytes_sent=stats.bytes_sent,
            packets_recv=stats.packets_recv,
            packets_sent=stats.packets_sent,
            errors_in=stats.errin,
            errors_out=stats.errout,
            drops_in=stats.dropin,
            drops_out=stats.dropout,
            counter_bits=self.counter_bits,
        )

    def list_interfaces(self, include_virtual: bool = False) -> Set[str]:
        try:
            names = set(psutil.net_if_stats())
        except (psutil.Error, OSError) as e:
            raise ReaderError(f"Failed to get interface list: {e}") from e
        if not include_virtual:
            names = {name for name in names if not is_virtual_interface(name)}
        return names

    def read_counters(self, name: str) -> InterfaceSample:
        validate_interface_name(name)
        counters = self._counters()
        return self._to_sample(name, self._clock(), counters.get(name))

    def read_all(self, names: Iterable[str]) -> Dict[str, ReadResult]:
        results: Dict[str, ReadResult] = {}
        valid = []
        for name in names:
            try:
                valid.append(validate_interface_name(name))
            except ReaderError as e:
                results[name] = e
        if not valid:
            return results

        try:
            counters = self._counters()
        except ReaderError as e:
            for name in valid:
                results[name] = e
            return results

        timestamp = self._clock()
        for name in valid:
            try:
                results[name] = self._to_sample(name, timestamp, counters.get(name))
            except ReaderError as e:
                results[name] = e
        return results
