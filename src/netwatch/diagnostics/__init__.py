"""
Active diagnostics: reachability and DNS probes against configured targets.
"""

from .prober import CRITICAL_FAILURES, DiagnosticsProber, parse_ping_rtt, ping_command

__all__ = [
    'CRITICAL_FAILURES',
    'DiagnosticsProber',
    'parse_ping_rtt',
    'ping_command',
]
