"""Core data models, configuration, errors and constants.

This package provides:
- Data models (EventLog, Meta, TroveUpdated, Position, HistoryEntry, ChunkRecord)
- Configuration classes (IndexerConfig, ScaleConfig, OracleConfig)
- The error taxonomy
"""

from trovind.core.config import ContractSource, IndexerConfig, OracleConfig, ScaleConfig, load_config
from trovind.core.models import (
    ChunkRecord,
    ContractEvent,
    EventLog,
    HistoryEntry,
    Meta,
    Operation,
    Position,
    PositionState,
    PositionStatus,
    TroveUpdated,
)

__all__ = [
    "ContractSource",
    "IndexerConfig",
    "OracleConfig",
    "ScaleConfig",
    "load_config",
    "ChunkRecord",
    "ContractEvent",
    "EventLog",
    "HistoryEntry",
    "Meta",
    "Operation",
    "Position",
    "PositionState",
    "PositionStatus",
    "TroveUpdated",
]
