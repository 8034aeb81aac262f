"""
Diagnostics probe models.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class ProbeKind(Enum):
    REACHABILITY = "reachability"
    DNS = "dns"


@dataclass(frozen=True)
class ProbeResult:
    target: str
    kind: ProbeKind
    success: bool
    round_trip_ms: Optional[float] = None
    """Round trip (reachability) or resolution latency (DNS), in milliseconds."""
    error: Optional[str] = None
    addresses: Tuple[str, ...] = field(default_factory=tuple)
    """Resolved addresses for DNS probes."""
    timestamp: float = 0.0


@dataclass(frozen=True)
class DiagnosticTarget:
    """Latest known state of one configured address or domain."""
    target: str
    kind: ProbeKind
    last_rtt_ms: Optional[float] = None
    last_success: Optional[bool] = None
    """None until the first probe completes."""
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    last_probe: Optional[float] = None
    addresses: Tuple[str, ...] = field(default_factory=tuple)

    def updated(self, result: ProbeResult) -> "DiagnosticTarget":
        """Return the target state after applying a probe result."""
        failures = 0 if result.success else self.consecutive_failures + 1
        return DiagnosticTarget(
            target=self.target,
            kind=self.kind,
            last_rtt_ms=result.round_trip_ms if result.success else self.last_rtt_ms,
            last_success=result.success,
            consecutive_failures=failures,
            last_error=result.error,
            last_probe=result.timestamp,
            addresses=result.addresses if result.success else self.addresses,
        )

    @property
    def status(self) -> str:
        if self.last_success is None:
            return "unknown"
        if self.last_success:
            return "online"
        if self.consecutive_failures >= 3:
            return "offline"
        return "degraded"
