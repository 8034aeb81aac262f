"""
netwatch - real-time network traffic monitor for Unix hosts.

Subpackages:
- readers: platform counter readers (Linux /proc/net/dev, macOS psutil)
- engine: counter deltas, rolling statistics, unit formatting, scheduler
- forensics: bounded event buffer, throttling and analysis passes
- diagnostics: concurrent reachability and DNS probes
"""

__version__ = "0.2.0"

from .config import SamplingConfig
from .errors import NetwatchError

__all__ = [
    'SamplingConfig',
    'NetwatchError',
    '__version__',
]
