"""
Forensics: bounded event log, throttling and failure-isolated analysis.
"""

from .buffer import EventRingBuffer
from .monitor import AnalysisReport, ForensicsMonitor
from .analyzers import AnalysisContext, Analyzer, create_analyzer, register_analyzer

__all__ = [
    'EventRingBuffer',
    'AnalysisReport',
    'ForensicsMonitor',
    'AnalysisContext',
    'Analyzer',
    'create_analyzer',
    'register_analyzer',
]
