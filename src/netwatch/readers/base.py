"""
Counter reader interface.
"""
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, Set, Union

from ..errors import ReaderError
from ..models.sample import InterfaceSample

# Interfaces hidden from list_interfaces() unless include_virtual is set
VIRTUAL_PREFIXES = ('lo', 'docker', 'veth', 'br-')

ReadResult = Union[InterfaceSample, ReaderError]


def is_virtual_interface(name: str) -> bool:
    return name.startswith(VIRTUAL_PREFIXES)


class ICounterReader(ABC):
    """
    Platform source of raw interface counters.

    Implementations must validate interface names before building any path
    or system query from them.
    """

    name = "base"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock

    @abstractmethod
    def list_interfaces(self, include_virtual: bool = False) -> Set[str]:
        """Names of the interfaces the platform currently reports."""

    @abstractmethod
    def read_counters(self, name: str) -> InterfaceSample:
        """
        Read one interface.

        Raises DeviceNotFound, PermissionDenied, ParseError or InvalidName.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """True when this reader can work on the current host."""

    def read_all(self, names: Iterable[str]) -> Dict[str, ReadResult]:
        """
        Read several interfaces; failures are returned, not raised.

        Readers that can fetch every interface in one system call override
        this to avoid one call per interface.
        """
        results: Dict[str, ReadResult] = {}
        for name in names:
            try:
                results[name] = self.read_counters(name)
            except ReaderError as e:
                results[name] = e
        return results
