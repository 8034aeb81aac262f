"""
Forensics event model.
"""
import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional

MAX_DETAIL_LENGTH = 256


class EventKind(Enum):
    TRAFFIC_SPIKE = "traffic_spike"
    INTERFACE_ERRORS = "interface_errors"
    COUNTER_RESET = "counter_reset"
    INTERFACE_REMOVED = "interface_removed"
    PORT_SCAN_SUSPECTED = "port_scan_suspected"
    CONNECTION_BURST = "connection_burst"
    INVALID_INPUT = "invalid_input"
    EVENT_BURST = "event_burst"
    REPEATED_INVALID_INPUT = "repeated_invalid_input"
    RESOURCE_EXHAUSTION = "resource_exhaustion"
    PROBE_FAILURE = "probe_failure"
    ANALYSIS_UNAVAILABLE = "analysis_unavailable"


class Severity(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.lower()


def _cap_detail(detail: str) -> str:
    if len(detail) <= MAX_DETAIL_LENGTH:
        return detail
    return detail[:MAX_DETAIL_LENGTH - 3] + "..."


@dataclass(frozen=True)
class ForensicsEvent:
    """A recorded security- or anomaly-relevant observation."""
    kind: EventKind
    severity: Severity
    subject: Optional[str] = None
    """Interface name or connection identifier the event is about."""
    detail: str = ""
    timestamp: float = field(default_factory=time.time)
    """Wall-clock time (seconds since the epoch)."""

    def __post_init__(self):
        if not isinstance(self.severity, Severity):
            object.__setattr__(self, 'severity', Severity(self.severity))
        object.__setattr__(self, 'detail', _cap_detail(str(self.detail)))

    @property
    def is_critical(self) -> bool:
        return self.severity >= Severity.CRITICAL

    def to_dict(self) -> dict:
        return {
            'kind': self.kind.value,
            'severity': self.severity.label,
            'subject': self.subject,
            'detail': self.detail,
            'timestamp': self.timestamp,
        }
