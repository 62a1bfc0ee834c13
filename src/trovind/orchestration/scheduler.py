"""Tailing scheduler: the fetch → decode → fold → persist control loop.

Two states:

- CATCHING_UP: the cursor is at or below the known chain head; the next
  batch `[cursor, min(cursor + batch_size - 1, head)]` is fetched, ingested
  and checkpointed, then the cursor advances past it.
- IDLE: the cursor is past the head; sleep `poll_interval_s` and re-query.

A failed fetch (or a store write rejection) leaves the cursor in place and
the same range is retried after `retry_interval_s`, forever. Only
`DuplicateIdentity` escapes the loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from trovind.core.errors import DuplicateIdentity, PersistenceError, TransientFetchError
from trovind.core.interfaces import ICursorRepository, ILedgerLogsProvider
from trovind.core.models import ChunkRecord
from trovind.core.use_cases.ingest import BatchStats, IngestService
from trovind.orchestration.utils import batch_bounds

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SchedulerState(str, Enum):
    CATCHING_UP = "catching_up"
    IDLE = "idle"


@dataclass(frozen=True)
class SchedulerConfig:
    """Domain-level configuration for the tailing loop."""

    start_block: int
    batch_size: int = 500
    poll_interval_s: float = 10.0
    retry_interval_s: float = 5.0


@dataclass(kw_only=True)
class SchedulerStats:
    """Running totals since the scheduler started."""

    batches: int = 0
    retries: int = 0
    logs: int = 0
    folded: int = 0
    rejected: int = 0
    skipped: int = 0

    def add(self, batch: BatchStats) -> None:
        self.batches += 1
        self.logs += batch.logs
        self.folded += batch.folded
        self.rejected += batch.rejected
        self.skipped += batch.skipped


class TailingScheduler:
    """
    Drives ingestion one block batch at a time, strictly in increasing order.

    The cursor (first unprocessed block) is recovered from the cursor
    repository on construction and checkpointed there after every batch.
    """

    def __init__(
        self,
        *,
        logs_provider: ILedgerLogsProvider,
        addresses: Sequence[str],
        ingest: IngestService,
        cursor_repo: ICursorRepository,
        config: SchedulerConfig,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._provider = logs_provider
        self._addresses = [a.lower() for a in addresses]
        self._ingest = ingest
        self._cursor_repo = cursor_repo
        self._config = config
        self._sleep = sleep

        self.cursor = max(config.start_block, cursor_repo.resume_from(config.start_block))
        self.head: int | None = None
        self.state = SchedulerState.CATCHING_UP
        self.stats = SchedulerStats()
        self._attempts = 0

    async def _refresh_head(self) -> bool:
        try:
            self.head = await self._provider.latest_block()
        except TransientFetchError as e:
            self.stats.retries += 1
            logger.warning("head query failed, retrying in %.1fs: %s", self._config.retry_interval_s, e)
            await self._sleep(self._config.retry_interval_s)
            return False
        return True

    async def _run_batch(self, from_block: int, to_block: int) -> None:
        self._attempts += 1
        try:
            logs = await self._provider.get_logs(
                addresses=self._addresses,
                from_block=from_block,
                to_block=to_block,
            )
            batch = self._ingest.process_logs(logs)
        except DuplicateIdentity:
            logger.critical("identity counter broken while processing [%d, %d]; halting", from_block, to_block)
            raise
        except (TransientFetchError, PersistenceError) as e:
            self.stats.retries += 1
            await self._cursor_repo.append(_failed_record(from_block, to_block, self._attempts, e))
            logger.warning(
                "batch [%d, %d] failed (attempt %d), retrying in %.1fs: %s",
                from_block, to_block, self._attempts, self._config.retry_interval_s, e,
            )
            await self._sleep(self._config.retry_interval_s)
            return

        await self._cursor_repo.append(_done_record(from_block, to_block, self._attempts, batch))
        self.stats.add(batch)
        self.cursor = to_block + 1
        self._attempts = 0
        logger.info(
            "processed batch %d-%d (%d logs, %d folded, %d rejected, %d skipped)",
            from_block, to_block, batch.logs, batch.folded, batch.rejected, batch.skipped,
        )

    async def step(self) -> SchedulerState:
        """Run one state-machine transition and return the resulting state."""
        if self.head is None or self.cursor > self.head:
            if not await self._refresh_head():
                return self.state
            assert self.head is not None
            if self.cursor > self.head:
                if self.state is not SchedulerState.IDLE:
                    logger.info("caught up at block %d; idling", self.head)
                self.state = SchedulerState.IDLE
                await self._sleep(self._config.poll_interval_s)
                return self.state

        self.state = SchedulerState.CATCHING_UP
        from_block, to_block = batch_bounds(self.cursor, self.head, self._config.batch_size)
        await self._run_batch(from_block, to_block)
        return self.state

    async def run(self, max_iterations: int | None = None) -> SchedulerStats:
        """Loop forever (or for `max_iterations` transitions)."""
        logger.info("tailing from block %d (batch size %d)", self.cursor, self._config.batch_size)
        n = 0
        while max_iterations is None or n < max_iterations:
            await self.step()
            n += 1
        return self.stats


# ---------------------------------------------------------------------------
# Chunk record helpers
# ---------------------------------------------------------------------------


def _done_record(a: int, b: int, attempts: int, batch: BatchStats) -> ChunkRecord:
    """Create a 'done' chunk record."""
    return ChunkRecord(
        from_block=a,
        to_block=b,
        status="done",
        attempts=attempts,
        error=None,
        logs=batch.logs,
        decoded=batch.decoded,
        folded=batch.folded,
        updated_at=time.time(),
        unresolved=batch.unresolved,
        skipped=batch.skipped,
        rejected=batch.rejected,
    )


def _failed_record(a: int, b: int, attempts: int, error: Exception) -> ChunkRecord:
    """Create a 'failed' chunk record."""
    return ChunkRecord(
        from_block=a,
        to_block=b,
        status="failed",
        attempts=attempts,
        error=f"{type(error).__name__}: {error}",
        logs=0,
        decoded=0,
        folded=0,
        updated_at=time.time(),
    )
