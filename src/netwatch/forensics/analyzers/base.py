"""Analyzer base class and the per-tick analysis context."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from ...models.events import ForensicsEvent
from ...models.sample import CounterDelta
from ...models.snapshot import MonitorSnapshot


@dataclass(frozen=True)
class AnalysisContext:
    """What one tick hands to the analyzers."""
    snapshot: MonitorSnapshot
    deltas: Dict[str, CounterDelta] = field(default_factory=dict)
    """Deltas recorded this tick, by interface name."""
    timestamp: float = 0.0
    """Wall-clock time of the tick."""
    high_performance: bool = False


class Analyzer:
    name = "base"
    version = "1.0"

    def analyze(self, context: AnalysisContext) -> List[ForensicsEvent]:
        raise NotImplementedError

    def reset(self) -> None:
        """Forget any state kept between ticks."""
