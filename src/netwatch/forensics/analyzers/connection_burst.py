"""
Connection correlation analyzer.

Groups the host's sockets by remote address with psutil and looks for two
patterns:

- one remote host holding half-open connections to many distinct local
  ports (PORT_SCAN_SUSPECTED)
- one remote host with an unusually large number of half-open connections
  (CONNECTION_BURST), attributed to the local process holding most of them
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Set

import psutil

from .base import AnalysisContext, Analyzer
from .registry import register_analyzer
from ...models.events import EventKind, ForensicsEvent, Severity

logger = logging.getLogger(__name__)

HALF_OPEN_STATES = (psutil.CONN_SYN_RECV, psutil.CONN_SYN_SENT)


@register_analyzer
class ConnectionBurstAnalyzer(Analyzer):
    name = "connection_burst"
    version = "1.0"

    def __init__(self, port_threshold: int = 20, half_open_threshold: int = 50,
                 report_interval: float = 60.0):
        self.port_threshold = port_threshold
        self.half_open_threshold = half_open_threshold
        self.report_interval = report_interval
        self.available = True
        self._last_report: Dict[tuple, float] = {}
        self._process_names: Dict[int, str] = {}

    def reset(self) -> None:
        self._last_report.clear()
        self._process_names.clear()

    def _connections(self):
        try:
            return psutil.net_connections(kind='inet')
        except psutil.AccessDenied:
            # macOS needs root for other users' sockets; stop asking every tick
            logger.warning("Connection analysis disabled: access to socket table denied")
            self.available = False
            return []

    def process_name(self, pid: Optional[int]) -> str:
        if not pid:
            return "unknown"
        if pid not in self._process_names:
            try:
                self._process_names[pid] = psutil.Process(pid).name()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                return f"pid {pid}"
        return self._process_names[pid]

    def _should_report(self, key: tuple, now: float) -> bool:
        last = self._last_report.get(key)
        if last is not None and now - last < self.report_interval:
            return False
        self._last_report[key] = now
        return True

    def analyze(self, context: AnalysisContext) -> List[ForensicsEvent]:
        if not self.available:
            return []

        half_open: Counter = Counter()
        local_ports: Dict[str, Set[int]] = defaultdict(set)
        owners: Dict[str, Counter] = defaultdict(Counter)

        for conn in self._connections():
            if not conn.raddr or conn.status not in HALF_OPEN_STATES:
                continue
            remote = conn.raddr.ip
            half_open[remote] += 1
            if conn.status == psutil.CONN_SYN_RECV:
                local_ports[remote].add(conn.laddr.port)
            owners[remote][conn.pid] += 1

        now = context.timestamp
        events = []
        for remote, count in half_open.most_common():
            ports = len(local_ports.get(remote, ()))
            if ports > self.port_threshold and self._should_report(('scan', remote), now):
                severity = Severity.CRITICAL if ports > self.port_threshold * 5 else Severity.HIGH
                events.append(ForensicsEvent(
                    kind=EventKind.PORT_SCAN_SUSPECTED,
                    severity=severity,
                    subject=remote,
                    detail=f"{remote} has half-open connections to {ports} local ports",
                    timestamp=now,
                ))
            if count > self.half_open_threshold and self._should_report(('burst', remote), now):
                pid, held = owners[remote].most_common(1)[0]
                events.append(ForensicsEvent(
                    kind=EventKind.CONNECTION_BURST,
                    severity=Severity.MEDIUM,
                    subject=remote,
                    detail=f"{count} half-open connections with {remote} "
                           f"({held} held by {self.process_name(pid)})",
                    timestamp=now,
                ))

        # Forget remotes that have not been reported for a while
        cutoff = now - self.report_interval
        self._last_report = {key: ts for key, ts in self._last_report.items() if ts > cutoff}
        return events
