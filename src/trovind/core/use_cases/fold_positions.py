from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Context, Decimal
from enum import Enum

from trovind.core.config import ScaleConfig
from trovind.core.errors import DuplicateActivePosition, PositionNotFound, PositionTerminated
from trovind.core.interfaces import IPositionRepository
from trovind.core.models import (
    HistoryEntry,
    Operation,
    Position,
    PositionState,
    PositionStatus,
    TroveUpdated,
)

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)
_CENT = Decimal("0.01")
_EXACT = Context(prec=80)  # uint256 has at most 78 digits


# ---------------------------------------------------------------------------
# Pure derivations
# ---------------------------------------------------------------------------


def scale_amount(raw: int, decimals: int) -> Decimal:
    """Convert a fixed-point integer into a Decimal with `decimals` places."""
    return Decimal(raw).scaleb(-decimals, _EXACT)


def health_ratio(debt: Decimal, coll: Decimal) -> Decimal:
    """Debt-to-collateral ratio as a percentage with 2 decimal places.

    Rounds half away from zero on the basis-point value; 0 when coll is 0.
    """
    if coll == 0:
        return Decimal("0.00")
    bps = (debt / coll * 10_000).to_integral_value(rounding=ROUND_HALF_UP)
    return (bps / _HUNDRED).quantize(_CENT)


def next_status(operation: Operation, debt: Decimal) -> PositionStatus:
    if operation is Operation.CLOSED:
        return PositionStatus.CLOSED
    if debt == 0:
        return PositionStatus.LIQUIDATED
    return PositionStatus.ACTIVE


def _timestamp(ev: TroveUpdated) -> str:
    """Block time when the node reports it, else processing time (UTC)."""
    ts = ev.meta.block_timestamp
    when = datetime.fromtimestamp(ts, tz=timezone.utc) if ts else datetime.now(tz=timezone.utc)
    return when.isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass(frozen=True, kw_only=True)
class Observation:
    """Everything the fold derives from one TroveUpdated event."""

    wallet: str
    asset: str
    coll: Decimal
    debt: Decimal
    operation: Operation
    nltv: Decimal
    entry: HistoryEntry

    @property
    def state(self) -> PositionState:
        return PositionState(
            coll=self.coll,
            debt=self.debt,
            nltv=self.nltv,
            status=next_status(self.operation, self.debt),
            block_number=self.entry.block_number,
        )


def observe(ev: TroveUpdated, scales: ScaleConfig) -> Observation:
    wallet = ev.wallet
    asset = ev.asset
    coll = scale_amount(ev.coll, scales.collateral_for(asset))
    debt = scale_amount(ev.debt, scales.debt_decimals)
    operation = Operation.from_code(ev.operation)
    return Observation(
        wallet=wallet,
        asset=asset,
        coll=coll,
        debt=debt,
        operation=operation,
        nltv=health_ratio(debt, coll),
        entry=HistoryEntry(
            tx_hash=ev.meta.tx_hash,
            log_index=ev.meta.log_index,
            coll=coll,
            debt=debt,
            operation=operation,
            timestamp=_timestamp(ev),
            block_number=ev.meta.block_number,
        ),
    )


# ---------------------------------------------------------------------------
# Folder
# ---------------------------------------------------------------------------


class FoldOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    REPLAYED = "replayed"


@dataclass(frozen=True)
class FoldResult:
    outcome: FoldOutcome
    position: Position | None


class PositionFolder:
    """
    Applies lifecycle events to position state through the repository.

    - `Opened` inserts a new position with the next sequential identity.
    - Any other operation updates the most recent position for the pair.
    - Events already applied (same tx hash and log index) are no-ops, so a
      batch replayed after a crash leaves the store unchanged.
    """

    def __init__(
        self,
        repository: IPositionRepository,
        scales: ScaleConfig,
        *,
        allow_terminal_updates: bool = False,
    ) -> None:
        self._repo = repository
        self._scales = scales
        self._allow_terminal_updates = allow_terminal_updates

    def fold(self, ev: TroveUpdated) -> FoldResult:
        if self._repo.has_applied(ev.meta.tx_hash, ev.meta.log_index):
            logger.debug("replayed event tx=%s log_index=%d skipped", ev.meta.tx_hash, ev.meta.log_index)
            return FoldResult(FoldOutcome.REPLAYED, None)

        obs = observe(ev, self._scales)
        if obs.operation is Operation.OPENED:
            return FoldResult(FoldOutcome.CREATED, self._open(obs))
        return FoldResult(FoldOutcome.UPDATED, self._update(obs))

    def _open(self, obs: Observation) -> Position:
        latest = self._repo.find_latest(obs.wallet, obs.asset)
        if latest is not None and latest.status is PositionStatus.ACTIVE:
            raise DuplicateActivePosition(
                f"position {latest.position_id} is already active",
                wallet=obs.wallet,
                asset=obs.asset,
            )
        state = obs.state
        position = Position(
            position_id=self._repo.next_identity(),
            wallet_address=obs.wallet,
            asset=obs.asset,
            coll=state.coll,
            debt=state.debt,
            nltv=state.nltv,
            status=PositionStatus.ACTIVE,
            block_number=state.block_number,
            history=[obs.entry],
        )
        self._repo.insert(position)
        return position

    def _update(self, obs: Observation) -> Position:
        latest = self._repo.find_latest(obs.wallet, obs.asset)
        if latest is None:
            raise PositionNotFound("no position to update", wallet=obs.wallet, asset=obs.asset)
        if latest.status.is_terminal and not self._allow_terminal_updates:
            raise PositionTerminated(
                f"position {latest.position_id} is {latest.status.value}",
                wallet=obs.wallet,
                asset=obs.asset,
            )
        return self._repo.update_latest(obs.wallet, obs.asset, None, obs.state, obs.entry)
