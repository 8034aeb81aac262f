"""
Forensics analyzers.

Importing this package registers the built-in analyzers.
"""

from .base import AnalysisContext, Analyzer
from .registry import available_analyzers, create_analyzer, default_analyzers, register_analyzer
from . import connection_burst, interface_errors, traffic_spike  # noqa: F401

__all__ = [
    'AnalysisContext',
    'Analyzer',
    'available_analyzers',
    'create_analyzer',
    'default_analyzers',
    'register_analyzer',
]
