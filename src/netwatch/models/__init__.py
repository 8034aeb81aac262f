"""
Data models shared by the readers, the engine and consumers.
"""

from .sample import COUNTER_FIELDS, CounterDelta, InterfaceSample
from .snapshot import DirectionStats, HistoryPoint, InterfaceSnapshot, MonitorSnapshot
from .events import MAX_DETAIL_LENGTH, EventKind, ForensicsEvent, Severity
from .diagnostics import DiagnosticTarget, ProbeKind, ProbeResult

__all__ = [
    'COUNTER_FIELDS',
    'CounterDelta',
    'InterfaceSample',
    'DirectionStats',
    'HistoryPoint',
    'InterfaceSnapshot',
    'MonitorSnapshot',
    'MAX_DETAIL_LENGTH',
    'EventKind',
    'ForensicsEvent',
    'Severity',
    'DiagnosticTarget',
    'ProbeKind',
    'ProbeResult',
]
