"""
Forensics monitor: the scheduler-facing side of the event buffer.

run_analysis() is a failure boundary. Every analyzer runs inside it; an
analyzer that raises is replaced by an ANALYSIS_UNAVAILABLE event for that
tick, and analyzers still queued when the tick budget runs out are skipped.
The budget is checked between analyzers only: one that has started runs to
completion, so a single slow analyzer can still overrun the tick.
Nothing an analyzer does can abort the scheduler's tick.
"""
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..errors import AnalysisFailure
from ..models.events import EventKind, ForensicsEvent, Severity
from .analyzers import AnalysisContext, Analyzer, default_analyzers
from .buffer import EventRingBuffer

logger = logging.getLogger(__name__)

ANOMALY_WINDOW_S = 60.0
EVENT_BURST_THRESHOLD = 10
INVALID_INPUT_THRESHOLD = 3

# Events the anomaly check itself produces; never counted towards a burst
_DERIVED_KINDS = (EventKind.EVENT_BURST, EventKind.REPEATED_INVALID_INPUT,
                  EventKind.RESOURCE_EXHAUSTION)


@dataclass
class AnalysisReport:
    """Outcome of one analysis pass."""
    events: List[ForensicsEvent] = field(default_factory=list)
    failures: List[AnalysisFailure] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    """Analyzers not run because the tick budget was spent."""
    duration: float = 0.0

    @property
    def degraded(self) -> bool:
        return bool(self.failures or self.skipped)


class ForensicsMonitor:
    def __init__(self,
                 buffer: Optional[EventRingBuffer] = None,
                 analyzers: Optional[Sequence[Analyzer]] = None,
                 tick_budget: float = 1.0,
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], float] = time.time):
        self.buffer = buffer if buffer is not None else EventRingBuffer(clock=clock)
        self.analyzers: List[Analyzer] = list(analyzers or [])
        self.tick_budget = tick_budget
        self._clock = clock
        self._wall_clock = wall_clock
        self.event_counts: Counter = Counter()
        self.critical_events = 0
        self._reported_dropped = 0
        self._last_exhaustion_report: Optional[float] = None

    @classmethod
    def from_config(cls, config, analyzers: Optional[Sequence[Analyzer]] = None,
                    clock: Callable[[], float] = time.monotonic) -> "ForensicsMonitor":
        """Monitor sized by a SamplingConfig, with every registered analyzer by default."""
        buffer = EventRingBuffer(config.event_capacity, config.event_rate_ceiling, clock)
        if analyzers is None:
            analyzers = default_analyzers()
        return cls(buffer, analyzers, tick_budget=config.refresh_interval, clock=clock)

    @property
    def high_performance(self) -> bool:
        return self.buffer.high_performance

    def set_high_performance_mode(self, enabled: bool) -> None:
        self.buffer.set_high_performance_mode(enabled)

    def record(self, event: ForensicsEvent) -> bool:
        """Push one event through the throttle; returns False if dropped."""
        if not self.buffer.push(event):
            return False
        self.event_counts[event.kind] += 1
        if event.is_critical:
            self.critical_events += 1
            logger.warning(f"Critical forensics event: {event.kind.value} "
                           f"{event.subject or ''} {event.detail}".rstrip())
        return True

    def record_invalid_input(self, input_type: str, value: str, source: str) -> bool:
        """Record a rejected user or config input."""
        return self.record(ForensicsEvent(
            kind=EventKind.INVALID_INPUT,
            severity=Severity.LOW,
            subject=source,
            detail=f"{input_type}: {value!r}",
            timestamp=self._wall_clock(),
        ))

    def run_analysis(self, context: AnalysisContext) -> AnalysisReport:
        """
        Run the analyzers in order until the tick budget is spent. Never raises.

        The budget is checked before each analyzer starts; a running analyzer
        is not interrupted, and everything after it is skipped once it
        overruns. report.duration shows the real cost.
        """
        report = AnalysisReport()
        started = self._clock()

        for analyzer in self.analyzers:
            if self._clock() - started >= self.tick_budget:
                report.skipped.append(analyzer.name)
                continue
            try:
                events = analyzer.analyze(context)
            except Exception as e:
                failure = AnalysisFailure(analyzer.name, e)
                logger.warning(str(failure))
                report.failures.append(failure)
                events = [ForensicsEvent(
                    kind=EventKind.ANALYSIS_UNAVAILABLE,
                    severity=Severity.MEDIUM,
                    subject=analyzer.name,
                    detail=f"analysis unavailable this tick: {e!r}",
                    timestamp=context.timestamp,
                )]
            for event in events:
                if self.record(event):
                    report.events.append(event)

        if report.skipped:
            logger.debug(f"Tick budget spent, skipped analyzers: {', '.join(report.skipped)}")

        for event in self.check_anomalies(context.timestamp) + self._check_exhaustion(context.timestamp):
            if self.record(event):
                report.events.append(event)

        report.duration = self._clock() - started
        return report

    def _check_exhaustion(self, now: float) -> List[ForensicsEvent]:
        dropped = self.buffer.dropped
        if dropped <= self._reported_dropped:
            return []
        if self._last_exhaustion_report is not None and now - self._last_exhaustion_report < ANOMALY_WINDOW_S:
            return []
        new_drops = dropped - self._reported_dropped
        self._reported_dropped = dropped
        self._last_exhaustion_report = now
        return [ForensicsEvent(
            kind=EventKind.RESOURCE_EXHAUSTION,
            severity=Severity.CRITICAL,
            subject="event_buffer",
            detail=f"{new_drops} events dropped by the throttle "
                   f"(ceiling {self.buffer.rate_ceiling}/s)",
            timestamp=now,
        )]

    def check_anomalies(self, now: Optional[float] = None) -> List[ForensicsEvent]:
        """
        Look for anomalies in the buffered events of the last minute:
        more than 10 events (EVENT_BURST), or more than 3 invalid inputs from
        one source (REPEATED_INVALID_INPUT). Skipped in high-performance mode.
        """
        if self.high_performance:
            return []
        if now is None:
            now = self._wall_clock()
        since = now - ANOMALY_WINDOW_S

        recent = 0
        invalid_sources: Counter = Counter()
        already_reported = set()
        for event in self.buffer.peek():
            if event.timestamp <= since:
                continue
            if event.kind in _DERIVED_KINDS:
                already_reported.add((event.kind, event.subject))
                continue
            recent += 1
            if event.kind is EventKind.INVALID_INPUT:
                invalid_sources[event.subject] += 1

        anomalies = []
        if recent > EVENT_BURST_THRESHOLD and (EventKind.EVENT_BURST, None) not in already_reported:
            anomalies.append(ForensicsEvent(
                kind=EventKind.EVENT_BURST,
                severity=Severity.HIGH,
                detail=f"{recent} events in the last {ANOMALY_WINDOW_S:.0f}s",
                timestamp=now,
            ))
        for source, count in sorted(invalid_sources.items(), key=lambda item: str(item[0])):
            if count > INVALID_INPUT_THRESHOLD and \
                    (EventKind.REPEATED_INVALID_INPUT, source) not in already_reported:
                anomalies.append(ForensicsEvent(
                    kind=EventKind.REPEATED_INVALID_INPUT,
                    severity=Severity.HIGH,
                    subject=source,
                    detail=f"{count} invalid inputs from {source}",
                    timestamp=now,
                ))
        return anomalies

    def event_rate(self) -> int:
        """Events offered to the buffer per second, for load evaluation."""
        return self.buffer.arrival_rate()

    def statistics(self) -> Dict[str, object]:
        return {
            'total_events': self.buffer.accepted,
            'buffered': len(self.buffer),
            'dropped': self.buffer.dropped,
            'critical_events': self.critical_events,
            'by_kind': {kind.value: count for kind, count in self.event_counts.items()},
            'high_performance': self.high_performance,
        }

    def recent_events(self, limit: Optional[int] = None) -> List[ForensicsEvent]:
        return self.buffer.peek(limit)

    def drain(self) -> List[ForensicsEvent]:
        return self.buffer.drain()
