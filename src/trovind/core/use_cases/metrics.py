"""System-wide aggregates over persisted positions."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from trovind.clients.price_feed import PriceObservation
from trovind.core.models import Position, PositionStatus


@dataclass(frozen=True, kw_only=True)
class SystemMetrics:
    """Totals across the active positions of one collateral asset.

    `tcr` is the total collateralization ratio (collateral value over
    debt); 0 when there is no outstanding debt.
    """

    asset: str
    total_coll: Decimal
    total_debt: Decimal
    coll_value: Decimal
    tcr: Decimal
    price: Decimal
    price_frozen: bool
    counts: dict[PositionStatus, int] = field(default_factory=dict)

    @property
    def total_positions(self) -> int:
        return sum(self.counts.values())


def compute_system_metrics(
    positions: Iterable[Position],
    price: PriceObservation,
    *,
    asset: str,
) -> SystemMetrics:
    """Aggregate positions collateralized by `asset`, valued at `price`.

    Positions in other collateral assets are ignored.
    """
    asset = asset.lower()
    total_coll = Decimal(0)
    total_debt = Decimal(0)
    counts: Counter[PositionStatus] = Counter()

    for p in positions:
        if p.asset.lower() != asset:
            continue
        counts[p.status] += 1
        if p.status is PositionStatus.ACTIVE:
            total_coll += p.coll
            total_debt += p.debt

    coll_value = total_coll * price.price
    tcr = coll_value / total_debt if total_debt else Decimal(0)
    return SystemMetrics(
        asset=asset,
        total_coll=total_coll,
        total_debt=total_debt,
        coll_value=coll_value,
        tcr=tcr,
        price=price.price,
        price_frozen=price.frozen,
        counts={s: counts.get(s, 0) for s in PositionStatus},
    )
