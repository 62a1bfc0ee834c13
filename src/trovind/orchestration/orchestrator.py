"""Indexer wiring: concrete RPC, decoding table, stores and the scheduler.

This module provides two layers:

1) `build_indexer(...)`:
   - Instantiates RPC, the decoding table, the position store and the
     manifest from an `IndexerConfig`.
   - Returns an `Indexer` bundle; nothing runs yet.

2) `run_indexer(...)`:
   - Builds the indexer, runs the tailing loop and closes resources.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from trovind.abi_events import build_decoding_table
from trovind.clients.rpc import RPC
from trovind.core.config import IndexerConfig
from trovind.core.interfaces import IPositionRepository
from trovind.core.use_cases.fold_positions import PositionFolder
from trovind.core.use_cases.ingest import IngestService
from trovind.decoding.registry import DecodingTableProvider
from trovind.orchestration.scheduler import SchedulerConfig, SchedulerStats, TailingScheduler
from trovind.storage.duckdb_store import DuckDBPositionStore
from trovind.storage.manifest import LiveManifest
from trovind.storage.memory import InMemoryPositionStore

logger = logging.getLogger(__name__)


def open_store(config: IndexerConfig) -> IPositionRepository:
    """Open the position store selected by `config.store`."""
    if config.store == "memory":
        return InMemoryPositionStore()
    return DuckDBPositionStore(config.db_path)


def close_store(store: IPositionRepository) -> None:
    close = getattr(store, "close", None)
    if close is not None:
        close()


@dataclass(kw_only=True)
class Indexer:
    """Fully wired indexer; `aclose` releases RPC and store handles."""

    rpc: RPC
    store: IPositionRepository
    manifest: LiveManifest
    scheduler: TailingScheduler

    async def aclose(self) -> None:
        await self.rpc.aclose()
        close_store(self.store)


def build_indexer(config: IndexerConfig, *, rpc: RPC | None = None) -> Indexer:
    table = build_decoding_table(config.contracts)
    logger.info(
        "decoding table loaded: %d event specs across %d contracts",
        len(table), len(config.contracts),
    )
    rpc = rpc or RPC(config.rpc_url, timeout_s=config.timeout_s)
    store = open_store(config)
    manifest = LiveManifest(config.manifest_path)

    folder = PositionFolder(
        store,
        config.scales,
        allow_terminal_updates=config.allow_terminal_updates,
    )
    ingest = IngestService(DecodingTableProvider(table), store, folder)
    scheduler = TailingScheduler(
        logs_provider=rpc,
        addresses=config.addresses,
        ingest=ingest,
        cursor_repo=manifest,
        config=SchedulerConfig(
            start_block=config.start_block,
            batch_size=config.batch_size,
            poll_interval_s=config.poll_interval_s,
            retry_interval_s=config.retry_interval_s,
        ),
    )
    return Indexer(rpc=rpc, store=store, manifest=manifest, scheduler=scheduler)


async def run_indexer(config: IndexerConfig, *, max_iterations: int | None = None) -> SchedulerStats:
    indexer = build_indexer(config)
    try:
        return await indexer.scheduler.run(max_iterations=max_iterations)
    finally:
        await indexer.aclose()
