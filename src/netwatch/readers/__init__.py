"""
Platform counter readers.

create_reader() picks the variant for the running OS once, at startup.
"""
import platform

from ..errors import ReaderError
from .base import ICounterReader, ReadResult, VIRTUAL_PREFIXES, is_virtual_interface
from .dummy_reader import DummyReader
from .linux_reader import LinuxReader, parse_proc_net_dev
from .macos_reader import MacOSReader


def create_reader(kind: str = "auto", **kwargs) -> ICounterReader:
    """
    Build a counter reader.

    kind: "auto" (by platform.system()), "linux", "macos" or "dummy".
    """
    if kind == "auto":
        system = platform.system()
        if system == "Linux":
            kind = "linux"
        elif system == "Darwin":
            kind = "macos"
        else:
            raise ReaderError(f"Unsupported platform: {system}")

    readers = {
        'linux': LinuxReader,
        'macos': MacOSReader,
        'dummy': DummyReader,
    }
    try:
        reader_class = readers[kind]
    except KeyError:
        raise ReaderError(f"Unknown reader: {kind}") from None
    return reader_class(**kwargs)


__all__ = [
    'ICounterReader',
    'ReadResult',
    'VIRTUAL_PREFIXES',
    'is_virtual_interface',
    'DummyReader',
    'LinuxReader',
    'MacOSReader',
    'parse_proc_net_dev',
    'create_reader',
]
