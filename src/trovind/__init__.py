"""Trovind: trove position indexer for EVM lending protocols."""

from __future__ import annotations

from .core.config import IndexerConfig, load_config
from .core.models import Position, PositionStatus, TroveUpdated
from .decoding.registry_builder import make_registry
from .decoding.specs import DataFieldSpec, EventRegistry, EventSpec, TopicFieldSpec

__version__ = "0.1.0"

__all__ = [
    "IndexerConfig",
    "load_config",
    "Position",
    "PositionStatus",
    "TroveUpdated",
    "make_registry",
    "EventSpec",
    "TopicFieldSpec",
    "DataFieldSpec",
    "EventRegistry",
]
