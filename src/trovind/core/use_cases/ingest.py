from __future__ import annotations

import logging
from dataclasses import dataclass

from trovind.core.errors import DecodeSkip, FoldError
from trovind.core.interfaces import IDecodingTableProvider, IPositionRepository
from trovind.core.models import EventLog, TroveUpdated
from trovind.core.use_cases.fold_positions import FoldOutcome, PositionFolder
from trovind.decoding.decoder import decode_event

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class BatchStats:
    """
    Counters for one ingested batch.

    - `unresolved`: logs whose (address, topic0) is not in the decoding table
    - `skipped`: resolved logs whose payload failed to decode
    - `folded`: lifecycle events applied to position state
    - `replayed`: lifecycle events already applied before (crash replay)
    - `rejected`: lifecycle events refused by the folder
    """

    logs: int = 0
    decoded: int = 0
    unresolved: int = 0
    skipped: int = 0
    folded: int = 0
    replayed: int = 0
    rejected: int = 0


# ---------------------------------------------------------------------------
# Domain service: IngestService
# ---------------------------------------------------------------------------


class IngestService:
    """
    Decode → fold → persist for one batch of logs.

    Logs are handled strictly in (block_number, log_index) order. Per-log
    problems (unknown signature, bad payload, rejected lifecycle event) are
    logged and counted; persistence errors propagate to the caller.
    """

    def __init__(
        self,
        table_provider: IDecodingTableProvider,
        repository: IPositionRepository,
        folder: PositionFolder,
    ) -> None:
        self._table = table_provider.get_table()
        self._repo = repository
        self._folder = folder

    def process_logs(self, logs: list[EventLog]) -> BatchStats:
        stats = BatchStats(logs=len(logs))

        for log in sorted(logs, key=lambda lg: lg.sort_key):
            try:
                ev = decode_event(log, self._table)
            except DecodeSkip as e:
                stats.skipped += 1
                logger.warning(
                    "decode skipped tx=%s log_index=%d block=%d: %s",
                    log.tx_hash, log.log_index, log.block_number, e,
                )
                continue
            if ev is None:
                stats.unresolved += 1
                logger.debug(
                    "unresolved log address=%s topic0=%s tx=%s",
                    log.address, log.topics[0] if log.topics else None, log.tx_hash,
                )
                continue

            stats.decoded += 1
            self._repo.append_event(ev)
            logger.debug("event %s contract=%s tx=%s", ev.name, ev.contract, ev.meta.tx_hash)

            if not isinstance(ev, TroveUpdated):
                continue

            try:
                result = self._folder.fold(ev)
            except FoldError as e:
                stats.rejected += 1
                logger.warning(
                    "position update rejected kind=%s wallet=%s asset=%s tx=%s: %s",
                    type(e).__name__, e.wallet, e.asset, ev.meta.tx_hash, e,
                )
                continue

            if result.outcome is FoldOutcome.REPLAYED:
                stats.replayed += 1
                continue
            stats.folded += 1
            pos = result.position
            if pos is not None:
                logger.info(
                    "position %s id=%d wallet=%s coll=%s debt=%s nltv=%s%% status=%s",
                    result.outcome.value, pos.position_id, pos.wallet_address,
                    pos.coll, pos.debt, pos.nltv, pos.status.value,
                )

        return stats
