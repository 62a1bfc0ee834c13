"""Error taxonomy for ingestion, folding and persistence.

Handling policy per family:

- `TransientFetchError`: retried forever by the tailing scheduler.
- `DecodeSkip`: the single log is skipped, the batch continues.
- `FoldError`: the lifecycle event is reported and dropped.
- `PersistenceError`: the whole batch is retried; `DuplicateIdentity` halts.
- `PriceUnavailable`: surfaced to the metrics consumer, never defaulted.
"""

from __future__ import annotations


class TrovindError(Exception):
    """Base class for all trovind errors."""


class ConfigError(TrovindError, ValueError):
    """Configuration file or option failed validation."""


# ---- ledger ----


class TransientFetchError(TrovindError):
    """A ledger query failed (network, timeout, HTTP status, JSON-RPC error)."""


class ContractCallError(TrovindError):
    """An `eth_call` reverted; `data` carries the raw revert payload if any."""

    def __init__(self, message: str, *, data: str | None = None) -> None:
        super().__init__(message)
        self.data = data


# ---- decoding ----


class DecodeSkip(TrovindError):
    """A log entry cannot be turned into a domain event and is skipped."""


class PayloadDecodeError(DecodeSkip):
    """A resolved event's payload does not match its declared fields."""


# ---- folding ----


class FoldError(TrovindError):
    """A lifecycle event cannot be applied to position state."""

    def __init__(self, message: str, *, wallet: str, asset: str) -> None:
        super().__init__(message)
        self.wallet = wallet
        self.asset = asset


class PositionNotFound(FoldError):
    """A non-opening event targets a (wallet, asset) pair with no record."""


class PositionTerminated(FoldError):
    """A non-opening event targets a pair whose latest record is closed or liquidated."""


class DuplicateActivePosition(FoldError):
    """An opening event targets a pair that already has an active position."""


# ---- persistence ----


class PersistenceError(TrovindError):
    """The position store rejected a write."""


class DuplicateIdentity(PersistenceError):
    """A position id was assigned twice; the identity counter is broken."""


# ---- pricing ----


class PriceUnavailable(TrovindError):
    """No usable oracle price (live call failed and no cached record applies)."""
