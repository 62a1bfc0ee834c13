"""Storage components for positions and cursor tracking.

This package provides:
- LiveManifest: append-only JSONL journal used as the tailing cursor checkpoint
- InMemoryPositionStore: process-local position repository
- DuckDBPositionStore: durable position repository on a DuckDB file
"""

from trovind.storage.duckdb_store import DuckDBPositionStore
from trovind.storage.manifest import LiveManifest
from trovind.storage.memory import InMemoryPositionStore

__all__ = [
    "DuckDBPositionStore",
    "LiveManifest",
    "InMemoryPositionStore",
]
