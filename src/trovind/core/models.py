"""Core data models for trove ingestion.

This module defines:
- `EventLog`: raw RPC log record consumed by the decoder.
- `Meta`: per-log metadata carried by every decoded event.
- `ContractEvent` / `TroveUpdated`: immutable decoded domain events.
- `Position` / `HistoryEntry` / `PositionState`: materialized trove state.
- `ChunkRecord`: manifest entry used as the tailing cursor checkpoint.

Design notes
------------
- Raw fixed-point amounts stay `int` on events; conversion to `Decimal`
  happens in the fold step where the per-asset scale is known.
- `TroveUpdated` is selected by event name after the signature lookup, so
  the fold step never reads from an untyped mapping.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Literal

Status = Literal["started", "done", "failed"]


def format_amount(value: Decimal) -> str:
    """Plain decimal text without exponent or trailing zeros ("0", "10.5")."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x..., signature first
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int
    block_timestamp: int | None = None

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)


@dataclass(slots=True, frozen=True)
class Meta:
    """Lightweight metadata for a single log used during decoding."""

    block_number: int
    block_timestamp: int | None
    tx_hash: str
    log_index: int
    address: str

    @classmethod
    def from_log(cls, log: EventLog) -> Meta:
        return cls(
            block_number=log.block_number,
            block_timestamp=log.block_timestamp,
            tx_hash=log.tx_hash,
            log_index=log.log_index,
            address=log.address,
        )


# === Domain events ===


class TroveOperation(IntEnum):
    """Raw lifecycle operation codes emitted by the trove manager."""

    OPEN = 0
    CLOSE = 1
    ADJUST = 2


class Operation(str, Enum):
    """Lifecycle operation label recorded in history entries."""

    OPENED = "Opened"
    CLOSED = "Closed"
    ADJUSTED = "Adjusted"
    UNKNOWN = "Unknown"

    @classmethod
    def from_code(cls, code: int) -> Operation:
        match code:
            case TroveOperation.OPEN:
                return cls.OPENED
            case TroveOperation.CLOSE:
                return cls.CLOSED
            case TroveOperation.ADJUST:
                return cls.ADJUSTED
        return cls.UNKNOWN


@dataclass(slots=True, frozen=True)
class ContractEvent:
    """Decoded event for any name without a dedicated variant.

    `indexed` holds the raw indexed topic values (signature excluded) in log
    order; it may be shorter than the event declares.
    """

    name: str
    contract: str
    meta: Meta
    indexed: tuple[str, ...]
    values: Mapping[str, Any]

    def indexed_address(self, position: int) -> str:
        """Return the lowercased address held by indexed topic `position` (1-based), or ""."""
        if position < 1 or position > len(self.indexed):
            return ""
        return "0x" + self.indexed[position - 1].lower()[-40:]

    @property
    def key(self) -> tuple[str, int]:
        """Idempotency key: (tx hash, log index)."""
        return (self.meta.tx_hash, self.meta.log_index)


@dataclass(slots=True, frozen=True)
class TroveUpdated(ContractEvent):
    """Lifecycle event: the trove of (topic 1 borrower, topic 2 asset) changed."""

    debt: int = 0
    coll: int = 0
    stake: int = 0
    operation: int = -1

    @property
    def wallet(self) -> str:
        return self.indexed_address(1)

    @property
    def asset(self) -> str:
        return self.indexed_address(2)


DomainEvent = ContractEvent | TroveUpdated


# === Positions ===


class PositionStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    LIQUIDATED = "liquidated"

    @property
    def is_terminal(self) -> bool:
        return self is not PositionStatus.ACTIVE


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    """One immutable audit record of a lifecycle event applied to a position."""

    tx_hash: str
    log_index: int
    coll: Decimal
    debt: Decimal
    operation: Operation
    timestamp: str  # ISO-8601, UTC
    block_number: int

    def to_document(self) -> dict[str, Any]:
        return {
            "txHash": self.tx_hash,
            "logIndex": self.log_index,
            "coll": format_amount(self.coll),
            "debt": format_amount(self.debt),
            "txType": self.operation.value,
            "timestamp": self.timestamp,
            "blockNumber": self.block_number,
        }


@dataclass(slots=True, frozen=True)
class PositionState:
    """Mutable fields of a position, replaced atomically on every update."""

    coll: Decimal
    debt: Decimal
    nltv: Decimal
    status: PositionStatus
    block_number: int


@dataclass(slots=True)
class Position:
    """Materialized state of one (wallet, asset) trove lifecycle."""

    position_id: int
    wallet_address: str
    asset: str
    coll: Decimal
    debt: Decimal
    nltv: Decimal
    status: PositionStatus
    block_number: int
    history: list[HistoryEntry] = field(default_factory=list)

    @property
    def state(self) -> PositionState:
        return PositionState(
            coll=self.coll,
            debt=self.debt,
            nltv=self.nltv,
            status=self.status,
            block_number=self.block_number,
        )

    def apply(self, state: PositionState, entry: HistoryEntry) -> None:
        """Replace mutable fields and append `entry` to the history."""
        self.coll = state.coll
        self.debt = state.debt
        self.nltv = state.nltv
        self.status = state.status
        self.block_number = state.block_number
        self.history.append(entry)

    def to_document(self) -> dict[str, Any]:
        return {
            "positionID": self.position_id,
            "walletAddress": self.wallet_address,
            "asset": self.asset,
            "coll": format_amount(self.coll),
            "debt": format_amount(self.debt),
            "nltv": str(self.nltv),
            "status": self.status.value,
            "blockNumber": self.block_number,
            "history": [h.to_document() for h in self.history],
        }


# === Manifest record ===


@dataclass(slots=True)
class ChunkRecord:
    """A single batch execution record persisted to the live manifest."""

    from_block: int
    to_block: int
    status: Status
    attempts: int
    error: str | None
    logs: int  # raw logs fetched
    decoded: int  # logs resolved into domain events
    folded: int  # lifecycle events applied to positions
    updated_at: float
    unresolved: int = 0  # logs with no decoding table entry
    skipped: int = 0  # resolved logs whose payload failed to decode
    rejected: int = 0  # lifecycle events refused by the folder

    def to_json_line(self) -> str:
        """Serialize as a compact JSON line."""
        return json.dumps(asdict(self), separators=(",", ":")) + "\n"
