from decimal import Decimal

from factories import ASSET, WALLET
from trovind.clients.price_feed import PriceObservation
from trovind.core.models import Position, PositionStatus
from trovind.core.use_cases.metrics import compute_system_metrics

PRICE = PriceObservation(price_raw=2 * 10**8, price=Decimal(2))


def _position(position_id: int, coll: str, debt: str, status: PositionStatus, asset: str = ASSET) -> Position:
    return Position(
        position_id=position_id,
        wallet_address=WALLET,
        asset=asset,
        coll=Decimal(coll),
        debt=Decimal(debt),
        nltv=Decimal(0),
        status=status,
        block_number=1,
    )


def test_totals_cover_active_positions_only() -> None:
    positions = [
        _position(1, "10", "5", PositionStatus.ACTIVE),
        _position(2, "6", "3", PositionStatus.ACTIVE),
        _position(3, "100", "0", PositionStatus.CLOSED),
        _position(4, "7", "0", PositionStatus.LIQUIDATED),
    ]

    m = compute_system_metrics(positions, PRICE, asset=ASSET)

    assert m.total_coll == Decimal(16)
    assert m.total_debt == Decimal(8)
    assert m.coll_value == Decimal(32)
    assert m.tcr == Decimal(4)
    assert m.counts == {
        PositionStatus.ACTIVE: 2,
        PositionStatus.CLOSED: 1,
        PositionStatus.LIQUIDATED: 1,
    }
    assert m.total_positions == 4


def test_tcr_is_zero_without_debt() -> None:
    m = compute_system_metrics([_position(1, "3", "0", PositionStatus.CLOSED)], PRICE, asset=ASSET)

    assert m.total_debt == 0
    assert m.tcr == 0
    assert m.counts[PositionStatus.ACTIVE] == 0


def test_frozen_price_is_reported() -> None:
    frozen = PriceObservation(price_raw=10**8, price=Decimal(1), frozen=True, feed_error="Feed is frozen")
    assert compute_system_metrics([], frozen, asset=ASSET).price_frozen


def test_other_collateral_assets_are_excluded() -> None:
    other = "0x" + "c".rjust(40, "0")
    positions = [
        _position(1, "10", "5", PositionStatus.ACTIVE),
        _position(2, "1000", "1", PositionStatus.ACTIVE, asset=other),
        _position(3, "4", "0", PositionStatus.CLOSED, asset=other),
    ]

    m = compute_system_metrics(positions, PRICE, asset=ASSET.upper().replace("0X", "0x"))

    assert m.asset == ASSET
    assert m.total_coll == Decimal(10)
    assert m.total_debt == Decimal(5)
    assert m.tcr == Decimal(4)
    assert m.total_positions == 1
