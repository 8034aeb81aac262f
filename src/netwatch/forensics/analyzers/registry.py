"""Analyzer registry."""
from __future__ import annotations

from typing import Dict, List, Type

from .base import Analyzer

_ANALYZERS: Dict[str, Type[Analyzer]] = {}


def register_analyzer(cls: Type[Analyzer]) -> Type[Analyzer]:
    if cls.name in _ANALYZERS:
        raise ValueError(f"Analyzer already registered: {cls.name}")
    _ANALYZERS[cls.name] = cls
    return cls


def available_analyzers() -> List[str]:
    return sorted(_ANALYZERS)


def create_analyzer(name: str, **kwargs) -> Analyzer:
    try:
        analyzer_class = _ANALYZERS[name]
    except KeyError:
        raise ValueError(f"Unknown analyzer: {name}") from None
    return analyzer_class(**kwargs)


def default_analyzers() -> List[Analyzer]:
    """One instance of every registered analyzer, in name order."""
    return [create_analyzer(name) for name in available_analyzers()]
