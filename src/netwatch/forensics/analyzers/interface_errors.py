"""Interface error/drop analyzer."""
from __future__ import annotations

from typing import List

from .base import AnalysisContext, Analyzer
from .registry import register_analyzer
from ...models.events import EventKind, ForensicsEvent, Severity

_ERROR_FIELDS = ('errors_in', 'errors_out', 'drops_in', 'drops_out')


@register_analyzer
class InterfaceErrorsAnalyzer(Analyzer):
    """Reports new errors and drops seen in the tick's deltas."""

    name = "interface_errors"
    version = "1.0"

    def __init__(self, high_threshold: int = 1000):
        self.high_threshold = high_threshold

    def analyze(self, context: AnalysisContext) -> List[ForensicsEvent]:
        events = []
        for name, delta in sorted(context.deltas.items()):
            # A reset counter reports its whole value as the delta
            counts = {field: getattr(delta, field) for field in _ERROR_FIELDS
                      if field not in delta.reset}
            total = sum(counts.values())
            if not total:
                continue
            severity = Severity.HIGH if total >= self.high_threshold else Severity.MEDIUM
            detail = ", ".join(f"{field}={count}" for field, count in counts.items() if count)
            events.append(ForensicsEvent(
                kind=EventKind.INTERFACE_ERRORS,
                severity=severity,
                subject=name,
                detail=f"{total} new errors/drops in {delta.elapsed:.2f}s ({detail})",
                timestamp=context.timestamp,
            ))
        return events
