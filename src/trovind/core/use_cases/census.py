"""Event census: which signatures the watched contracts actually emit.

Used to check a decoding table against live traffic before tailing; counts
logs per topic0 and flags topics the table cannot resolve.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from trovind.core.interfaces import ILedgerLogsProvider
from trovind.core.models import EventLog
from trovind.decoding.registry import table_topic0s
from trovind.decoding.specs import DecodingTable
from trovind.orchestration.utils import iter_chunks

logger = logging.getLogger(__name__)


@dataclass(kw_only=True)
class TopicCensus:
    topic0: str
    count: int = 0
    addresses: list[str] = field(default_factory=list)
    event: str | None = None  # resolved event name, if the table knows topic0
    resolved: bool = False  # the table resolves (address, topic0) for every emitter


def census_logs(logs: Iterable[EventLog], table: DecodingTable) -> list[TopicCensus]:
    """Group logs by topic0, most frequent first."""
    names = table_topic0s(table)
    rows: dict[str, TopicCensus] = {}
    for log in logs:
        if not log.topics:
            continue
        topic0 = log.topics[0].lower()
        row = rows.get(topic0)
        if row is None:
            row = rows[topic0] = TopicCensus(topic0=topic0, event=names.get(topic0))
        row.count += 1
        if log.address not in row.addresses:
            row.addresses.append(log.address)

    for row in rows.values():
        row.resolved = all((a, row.topic0) in table for a in row.addresses)
    return sorted(rows.values(), key=lambda r: (-r.count, r.topic0))


async def collect_census(
    provider: ILedgerLogsProvider,
    addresses: Sequence[str],
    table: DecodingTable,
    *,
    from_block: int,
    to_block: int,
    step: int = 1_000,
) -> list[TopicCensus]:
    """Fetch `[from_block, to_block]` in `step`-sized requests and census the result."""
    logs: list[EventLog] = []
    for a, b in iter_chunks(from_block, to_block, step):
        chunk = await provider.get_logs(addresses=addresses, from_block=a, to_block=b)
        logger.debug("census chunk %d-%d -> %d logs", a, b, len(chunk))
        logs.extend(chunk)
    return census_logs(logs, table)
