"""Orchestration for tailing the ledger with resumability.

This package provides:
- The tailing scheduler state machine (TailingScheduler)
- Indexer wiring from configuration (build_indexer, run_indexer)
- Block-range helpers (batch_bounds, iter_chunks)
"""

from trovind.orchestration.orchestrator import Indexer, build_indexer, run_indexer
from trovind.orchestration.scheduler import (
    SchedulerConfig,
    SchedulerState,
    SchedulerStats,
    TailingScheduler,
)
from trovind.orchestration.utils import batch_bounds, iter_chunks

__all__ = [
    "Indexer",
    "build_indexer",
    "run_indexer",
    "SchedulerConfig",
    "SchedulerState",
    "SchedulerStats",
    "TailingScheduler",
    "batch_bounds",
    "iter_chunks",
]
