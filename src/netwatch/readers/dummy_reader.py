"""
Dummy counter reader for testing without touching the host's interfaces.

Two modes:
- synthetic: counters of each interface grow by a random amount per read
- scripted: each read returns the next entry of a per-interface script;
  an entry may be a dict of counter values or a ReaderError to raise
"""
import random
import threading
import time
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Union

from ..errors import DeviceNotFound, ReaderError
from ..models.sample import COUNTER_FIELDS, InterfaceSample
from ..validation import validate_interface_name
from .base import ICounterReader, is_virtual_interface

ScriptEntry = Union[Mapping[str, int], ReaderError]

DEFAULT_INTERFACES = ('dummy0', 'dummy1')


class DummyReader(ICounterReader):
    """Reader that generates synthetic counters."""

    name = "dummy"

    def __init__(self,
                 interfaces: Sequence[str] = DEFAULT_INTERFACES,
                 script: Optional[Mapping[str, Sequence[ScriptEntry]]] = None,
                 counter_bits: int = 64,
                 bytes_per_second: int = 125_000,
                 clock: Callable[[], float] = time.monotonic,
                 seed: Optional[int] = None):
        super().__init__(clock)
        self._lock = threading.RLock()
        self._interfaces: List[str] = list(interfaces)
        self._script: Dict[str, List[ScriptEntry]] = {
            name: list(entries) for name, entries in (script or {}).items()
        }
        for name in self._script:
            if name not in self._interfaces:
                self._interfaces.append(name)
        self._counters: Dict[str, Dict[str, int]] = {}
        self._last_read: Dict[str, float] = {}
        self.counter_bits = counter_bits
        self.bytes_per_second = bytes_per_second
        self._random = random.Random(seed)
        self.reads = 0

    def is_available(self) -> bool:
        return True

    def list_interfaces(self, include_virtual: bool = False) -> Set[str]:
        with self._lock:
            names = set(self._interfaces)
        if not include_virtual:
            names = {name for name in names if not is_virtual_interface(name)}
        return names

    def add_interface(self, name: str) -> None:
        with self._lock:
            if name not in self._interfaces:
                self._interfaces.append(name)

    def remove_interface(self, name: str) -> None:
        with self._lock:
            if name in self._interfaces:
                self._interfaces.remove(name)
            self._counters.pop(name, None)
            self._last_read.pop(name, None)

    def set_script(self, name: str, entries: Sequence[ScriptEntry]) -> None:
        with self._lock:
            self._script[name] = list(entries)
            self.add_interface(name)

    def read_counters(self, name: str) -> InterfaceSample:
        validate_interface_name(name)
        with self._lock:
            self.reads += 1
            if name not in self._interfaces:
                raise DeviceNotFound(name)
            now = self._clock()
            if name in self._script:
                values = self._next_scripted(name)
            else:
                values = self._next_synthetic(name, now)
            self._last_read[name] = now
            return InterfaceSample(name=name, timestamp=now, counter_bits=self.counter_bits, **values)

    def _next_scripted(self, name: str) -> Dict[str, int]:
        entries = self._script[name]
        if not entries:
            raise DeviceNotFound(name)
        # The last entry repeats once the script is exhausted
        entry = entries.pop(0) if len(entries) > 1 else entries[0]
        if isinstance(entry, ReaderError):
            raise entry
        values = {field: 0 for field in COUNTER_FIELDS}
        values.update(entry)
        return values

    def _next_synthetic(self, name: str, now: float) -> Dict[str, int]:
        counters = self._counters.setdefault(name, {field: 0 for field in COUNTER_FIELDS})
        elapsed = now - self._last_read.get(name, now)
        if elapsed > 0:
            limit = (1 << self.counter_bits) - 1
            base = self.bytes_per_second * elapsed
            rx = int(base * self._random.uniform(0.5, 1.5))
            tx = int(base * self._random.uniform(0.2, 0.8))
            increments = {
                'bytes_recv': rx,
                'bytes_sent': tx,
                'packets_recv': rx // 1200,
                'packets_sent': tx // 1200,
            }
            for field, amount in increments.items():
                # Wrap like a real fixed-width counter
                counters[field] = (counters[field] + amount) & limit
        return dict(counters)
