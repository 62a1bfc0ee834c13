from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import TYPE_CHECKING, List, Protocol, runtime_checkable

from trovind.core.models import (
    ChunkRecord,
    DomainEvent,
    EventLog,
    HistoryEntry,
    Position,
    PositionState,
    PositionStatus,
)

if TYPE_CHECKING:
    from trovind.decoding.specs import DecodingTable


# ---------------------------------------------------------------------------
# ILedgerLogsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class ILedgerLogsProvider(Protocol):
    """
    Abstract provider for fetching ledger logs.

    Domain expectations:
    - It returns EventLog objects ordered by (block_number, log_index).
    - It raises TransientFetchError on any failure and never returns a
      partial range.
    """

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> List[EventLog]:
        """
        Return all logs emitted by `addresses` over the inclusive block range.

        Implementations:
        - RPC-based (`RPC` class)
        - In-memory or synthetic provider for testing
        """
        ...

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...


# ---------------------------------------------------------------------------
# ICursorRepository
# ---------------------------------------------------------------------------

@runtime_checkable
class ICursorRepository(Protocol):
    """
    Append-only journal of batch outcomes; the tailing cursor is derived from it.

    Domain expectations:
    - A 'done' record is appended only after the batch is fully persisted.
    - `resume_from(start)` returns the first block not yet covered by a
      contiguous run of 'done' records beginning at or before `start`.
    """

    async def append(self, record: ChunkRecord) -> None:
        ...

    def resume_from(self, start_block: int) -> int:
        ...


# ---------------------------------------------------------------------------
# IPositionRepository
# ---------------------------------------------------------------------------

@runtime_checkable
class IPositionRepository(Protocol):
    """
    Persistence gateway for positions, their history and the raw event audit log.

    Domain expectations:
    - Positions are keyed on `position_id`; "most recent" means highest id.
    - `update_latest` replaces mutable fields and appends the history entry
      atomically.
    - Writes rejected by the store raise PersistenceError.
    """

    def next_identity(self) -> int:
        """Return max(position_id) + 1, or 1 for an empty store."""
        ...

    def insert(self, position: Position) -> None:
        """Create a new position document; DuplicateIdentity if the id exists."""
        ...

    def find_latest(
        self,
        wallet: str,
        asset: str,
        statuses: Collection[PositionStatus] | None = None,
    ) -> Position | None:
        """Return the most recent position for (wallet, asset), optionally filtered by status."""
        ...

    def update_latest(
        self,
        wallet: str,
        asset: str,
        statuses: Collection[PositionStatus] | None,
        state: PositionState,
        entry: HistoryEntry,
    ) -> Position:
        """Apply `state` + `entry` to the most recent matching position; PositionNotFound if none."""
        ...

    def has_applied(self, tx_hash: str, log_index: int) -> bool:
        """True if a history entry for (tx_hash, log_index) already exists."""
        ...

    def append_event(self, event: DomainEvent) -> None:
        """Record a decoded event in the append-only audit log (idempotent per key)."""
        ...

    def get(self, position_id: int) -> Position | None:
        ...

    def list_positions(self, status: PositionStatus | None = None) -> list[Position]:
        ...


# ---------------------------------------------------------------------------
# IDecodingTableProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IDecodingTableProvider(Protocol):
    """
    Abstract provider of the DecodingTable used for decoding events.

    Domain expectations:
    - It provides a fully initialized table, built once at startup.
    - How the table is built (ABI files, signature strings) is an
      infrastructure concern.
    """

    def get_table(self) -> DecodingTable:
        ...
