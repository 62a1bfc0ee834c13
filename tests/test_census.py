import pytest

from factories import BASE_RATE_T0, BORROWER_OPERATIONS, E18, TROVE_MANAGER, TROVE_UPDATED_T0, trove_log
from trovind.core.models import EventLog
from trovind.core.use_cases.census import census_logs, collect_census

UNKNOWN_T0 = "0x" + "99" * 32


def _logs() -> list[EventLog]:
    return [
        trove_log(debt=E18, coll=E18, operation=0, block=1),
        trove_log(debt=E18, coll=E18, operation=2, block=2),
        trove_log(debt=E18, coll=E18, operation=2, block=3, address=BORROWER_OPERATIONS),
        EventLog(TROVE_MANAGER, (UNKNOWN_T0,), "0x", 4, "0xaa", 0),
        EventLog(TROVE_MANAGER, (BASE_RATE_T0,), "0x", 4, "0xaa", 1),
        EventLog(TROVE_MANAGER, (), "0x", 4, "0xaa", 2),
    ]


def test_census_counts_topics(table) -> None:
    rows = {row.topic0: row for row in census_logs(_logs(), table)}

    trove = rows[TROVE_UPDATED_T0]
    assert trove.count == 3
    assert trove.event == "TroveUpdated"
    assert trove.addresses == [TROVE_MANAGER, BORROWER_OPERATIONS]
    assert not trove.resolved

    assert rows[BASE_RATE_T0].resolved
    assert rows[UNKNOWN_T0].event is None
    assert not rows[UNKNOWN_T0].resolved
    assert len(rows) == 3


def test_census_orders_by_frequency(table) -> None:
    rows = census_logs(_logs(), table)
    assert rows[0].topic0 == TROVE_UPDATED_T0


@pytest.mark.asyncio
async def test_collect_census_fetches_in_chunks(mock_rpc, table) -> None:
    mock_rpc.get_logs.side_effect = [_logs()[:2], [], _logs()[2:3]]

    rows = await collect_census(mock_rpc, [TROVE_MANAGER], table, from_block=0, to_block=25, step=10)

    ranges = [(c.kwargs["from_block"], c.kwargs["to_block"]) for c in mock_rpc.get_logs.await_args_list]
    assert ranges == [(0, 9), (10, 19), (20, 25)]
    assert rows[0].count == 3
