"""
Sampling engine: counter deltas, rolling statistics and the scheduler loop.
"""

from .delta import CounterDeltaEngine, counter_delta
from .window import RateWindow
from .history import HistoryRing
from .aggregator import StatisticsAggregator
from .units import TrafficUnit, format_number, format_rate, format_total
from .scheduler import InterfaceState, SamplingScheduler, SchedulerState

__all__ = [
    'CounterDeltaEngine',
    'counter_delta',
    'RateWindow',
    'HistoryRing',
    'StatisticsAggregator',
    'TrafficUnit',
    'format_number',
    'format_rate',
    'format_total',
    'InterfaceState',
    'SamplingScheduler',
    'SchedulerState',
]
