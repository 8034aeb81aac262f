"""
Linux counter reader.

Parses the kernel's per-interface table in /proc/net/dev:

    Inter-|   Receive                                                |  Transmit
     face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
      eth0: 9876543210   5000    0    0    0     0          0         0  1234567890   3000    0    0    0     0       0          0

Only the line that fails to parse is lost; other interfaces still read.
"""
import logging
import os
import sys
import time
from typing import Callable, Dict, Iterable, Set, Tuple, Union

from ..errors import DeviceNotFound, ParseError, PermissionDenied, ReaderError
from ..models.sample import InterfaceSample
from ..validation import validate_interface_name
from .base import ICounterReader, ReadResult, is_virtual_interface

logger = logging.getLogger(__name__)

PROC_NET_DEV = "/proc/net/dev"

# Column index (after the "name:" prefix) -> InterfaceSample field
_COLUMNS = (
    (0, 'bytes_recv'),
    (1, 'packets_recv'),
    (2, 'errors_in'),
    (3, 'drops_in'),
    (8, 'bytes_sent'),
    (9, 'packets_sent'),
    (10, 'errors_out'),
    (11, 'drops_out'),
)
_MIN_COLUMNS = 12

Row = Dict[str, int]


def parse_proc_net_dev(content: str) -> Dict[str, Union[Row, ParseError]]:
    """
    Parse the text of /proc/net/dev.

    Returns {interface: counters} where a malformed line maps to a ParseError
    instead of counters. Lines without an interface name are skipped.
    """
    rows: Dict[str, Union[Row, ParseError]] = {}
    for line_no, line in enumerate(content.splitlines()[2:], start=3):
        if not line.strip():
            continue
        if ':' not in line:
            logger.debug("Skipping line %d of %s without a name: %r", line_no, PROC_NET_DEV, line)
            continue

        name, _, data = line.partition(':')
        name = name.strip()
        if not name:
            continue

        parts = data.split()
        if len(parts) < _MIN_COLUMNS:
            rows[name] = ParseError(
                f"{name}: expected at least {_MIN_COLUMNS} columns, got {len(parts)}")
            continue

        try:
            row = {field: int(parts[index]) for index, field in _COLUMNS}
        except ValueError as e:
            rows[name] = ParseError(f"{name}: {e}")
            continue
        if any(value < 0 for value in row.values()):
            rows[name] = ParseError(f"{name}: negative counter")
            continue
        rows[name] = row
    return rows


class LinuxReader(ICounterReader):
    """Reads /proc/net/dev once per call."""

    name = "linux"

    def __init__(self, path: str = PROC_NET_DEV, clock: Callable[[], float] = time.monotonic):
        super().__init__(clock)
        self.path = path
        # /proc/net/dev prints unsigned long, which is 32 bits on 32-bit kernels
        self.counter_bits = 64 if sys.maxsize > 2 ** 32 else 32

    def is_available(self) -> bool:
        return os.path.exists(self.path)

    def _read_table(self) -> Tuple[float, Dict[str, Union[Row, ParseError]]]:
        try:
            with open(self.path, 'r', encoding='ascii', errors='replace') as f:
                content = f.read()
        except FileNotFoundError as e:
            raise ReaderError(f"{self.path} not found") from e
        except PermissionError as e:
            raise PermissionDenied(self.path, str(e)) from e
        except OSError as e:
            raise ReaderError(f"Failed to read {self.path}: {e}") from e
        return self._clock(), parse_proc_net_dev(content)

    def _to_sample(self, name: str, timestamp: float, row: Union[Row, ParseError, None]) -> InterfaceSample:
        if row is None:
            raise DeviceNotFound(name)
        if isinstance(row, ParseError):
            raise row
        return InterfaceSample(name=name, timestamp=timestamp, counter_bits=self.counter_bits, **row)

    def list_interfaces(self, include_virtual: bool = False) -> Set[str]:
        _ts, table = self._read_table()
        names = set()
        for name in table:
            if not include_virtual and is_virtual_interface(name):
                continue
            names.add(name)
        return names

    def read_counters(self, name: str) -> InterfaceSample:
        validate_interface_name(name)
        try:
            timestamp, table = self._read_table()
        except PermissionDenied:
            raise
        except ReaderError as e:
            raise DeviceNotFound(name) from e
        return self._to_sample(name, timestamp, table.get(name))

    def read_all(self, names: Iterable[str]) -> Dict[str, ReadResult]:
        names = list(names)
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
            timestamp, table = self._read_table()
        except ReaderError as e:
            for name in valid:
                results[name] = e
            return results

        for name in valid:
            try:
                results[name] = self._to_sample(name, timestamp, table.get(name))
            except ReaderError as e:
                results[name] = e
        return results
