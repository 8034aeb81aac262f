"""
Traffic spike analyzer.

Flags an interface whose instantaneous rate jumps above its own recent
history: more than mean + 2 standard deviations is a medium spike, more
than mean + 3 is a high one.
"""
from __future__ import annotations

import statistics
from typing import List

from .base import AnalysisContext, Analyzer
from .registry import register_analyzer
from ...models.events import EventKind, ForensicsEvent, Severity

# Spikes below this rate (bytes/s) are noise on an idle link
MIN_SPIKE_RATE = 10_240


@register_analyzer
class TrafficSpikeAnalyzer(Analyzer):
    name = "traffic_spike"
    version = "1.0"

    def __init__(self, warmup: int = 10, medium_sigma: float = 2.0, high_sigma: float = 3.0,
                 min_rate: float = MIN_SPIKE_RATE):
        self.warmup = warmup
        self.medium_sigma = medium_sigma
        self.high_sigma = high_sigma
        self.min_rate = min_rate

    def analyze(self, context: AnalysisContext) -> List[ForensicsEvent]:
        events = []
        for snap in context.snapshot.interfaces:
            if snap.stale or snap.name not in context.deltas:
                continue
            for direction, stats in (('rx', snap.rx), ('tx', snap.tx)):
                event = self._check(snap.name, direction, stats.instant_rate,
                                    [rate for _, rate in stats.history[:-1]], context.timestamp)
                if event is not None:
                    events.append(event)
        return events

    def _check(self, name, direction, current, baseline, timestamp):
        if len(baseline) < self.warmup or current < self.min_rate:
            return None

        mean = statistics.fmean(baseline)
        std = statistics.pstdev(baseline, mean)
        if std == 0:
            return None

        if current > mean + self.high_sigma * std:
            severity = Severity.HIGH
        elif current > mean + self.medium_sigma * std:
            severity = Severity.MEDIUM
        else:
            return None

        sigmas = (current - mean) / std
        return ForensicsEvent(
            kind=EventKind.TRAFFIC_SPIKE,
            severity=severity,
            subject=name,
            detail=f"{direction} rate {current:.0f} B/s is {sigmas:.1f} sigma above "
                   f"the mean of {mean:.0f} B/s",
            timestamp=timestamp,
        )
