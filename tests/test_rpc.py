import json

import httpx
import pytest

from factories import E18, TROVE_MANAGER, raw_log, trove_log
from trovind.clients.rpc import RPC, parse_log, to_hex_block
from trovind.core.errors import ContractCallError, TransientFetchError


def _rpc(handler) -> RPC:
    return RPC("http://node.test", transport=httpx.MockTransport(handler))


def _result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def test_to_hex_block() -> None:
    assert to_hex_block(0) == "0x0"
    assert to_hex_block(3_772_000) == "0x398e60"


def test_parse_log_normalizes_case() -> None:
    log = trove_log(debt=E18, coll=E18, operation=0, block=42, log_index=3)
    raw = raw_log(log)
    raw["address"] = raw["address"].upper().replace("0X", "0x")
    raw["blockTimestamp"] = "0x10"

    parsed = parse_log(raw)

    assert parsed.address == TROVE_MANAGER
    assert parsed.block_number == 42
    assert parsed.log_index == 3
    assert parsed.block_timestamp == 16
    assert parsed.topics == log.topics


@pytest.mark.asyncio
async def test_latest_block() -> None:
    rpc = _rpc(lambda request: _result(request, "0x64"))
    try:
        assert await rpc.latest_block() == 100
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_get_logs_sends_range_and_sorts_result() -> None:
    seen: list[dict] = []
    logs = [
        trove_log(debt=E18, coll=E18, operation=0, block=11, log_index=0),
        trove_log(debt=E18, coll=E18, operation=0, block=10, log_index=7),
        trove_log(debt=E18, coll=E18, operation=0, block=10, log_index=2),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return _result(request, [raw_log(lg) for lg in logs])

    rpc = _rpc(handler)
    try:
        out = await rpc.get_logs(addresses=[TROVE_MANAGER.upper().replace("0X", "0x")], from_block=10, to_block=11)
    finally:
        await rpc.aclose()

    assert [(lg.block_number, lg.log_index) for lg in out] == [(10, 2), (10, 7), (11, 0)]
    (body,) = seen
    assert body["method"] == "eth_getLogs"
    assert body["params"] == [{"address": [TROVE_MANAGER], "fromBlock": "0xa", "toBlock": "0xb"}]


@pytest.mark.asyncio
async def test_get_logs_rejects_inverted_range() -> None:
    rpc = _rpc(lambda request: _result(request, []))
    try:
        with pytest.raises(ValueError):
            await rpc.get_logs(addresses=[TROVE_MANAGER], from_block=10, to_block=9)
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_json_rpc_error_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "limit"}})

    rpc = _rpc(handler)
    try:
        with pytest.raises(TransientFetchError, match="limit"):
            await rpc.get_logs(addresses=[TROVE_MANAGER], from_block=1, to_block=2)
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_http_status_is_transient() -> None:
    rpc = _rpc(lambda request: httpx.Response(503, text="unavailable"))
    try:
        with pytest.raises(TransientFetchError):
            await rpc.latest_block()
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_connection_error_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    rpc = _rpc(handler)
    try:
        with pytest.raises(TransientFetchError):
            await rpc.latest_block()
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_malformed_log_entry_is_transient() -> None:
    rpc = _rpc(lambda request: _result(request, [{"address": TROVE_MANAGER}]))
    try:
        with pytest.raises(TransientFetchError):
            await rpc.get_logs(addresses=[TROVE_MANAGER], from_block=1, to_block=2)
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_eth_call_revert_carries_data() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": 3, "message": "execution reverted", "data": {"data": "0xdeadbeef"}},
            },
        )

    rpc = _rpc(handler)
    try:
        with pytest.raises(ContractCallError) as exc:
            await rpc.eth_call(to=TROVE_MANAGER, data="0x12345678")
    finally:
        await rpc.aclose()
    assert exc.value.data == "0xdeadbeef"


@pytest.mark.asyncio
async def test_eth_call_returns_result() -> None:
    rpc = _rpc(lambda request: _result(request, "0x" + "00" * 31 + "2a"))
    try:
        assert await rpc.eth_call(to=TROVE_MANAGER, data="0x12345678") == "0x" + "00" * 31 + "2a"
    finally:
        await rpc.aclose()
