import json
from decimal import Decimal

import httpx
import pytest

from factories import encode_words
from trovind.clients.price_feed import PriceFeedReader, encode_address_call, selector
from trovind.clients.rpc import RPC
from trovind.core.config import OracleConfig
from trovind.core.constants import (
    DEFAULT_ASSET,
    FEED_FROZEN_ERROR_SIGNATURE,
    FETCH_PRICE_SIGNATURE,
    ORACLE_RECORDS_SIGNATURE,
    PRICE_RECORDS_SIGNATURE,
)
from trovind.core.errors import PriceUnavailable

FETCH = selector(FETCH_PRICE_SIGNATURE)
RECORDS = selector(PRICE_RECORDS_SIGNATURE)
FROZEN = selector(FEED_FROZEN_ERROR_SIGNATURE)
ORACLE = selector(ORACLE_RECORDS_SIGNATURE)


def _ok(result: str) -> httpx.Response:
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


def _revert(data: str | None) -> httpx.Response:
    error = {"code": 3, "message": "execution reverted"}
    if data is not None:
        error["data"] = data
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": error})


def _reader(responses: dict[str, httpx.Response]) -> tuple[PriceFeedReader, RPC]:
    def handler(request: httpx.Request) -> httpx.Response:
        call = json.loads(request.content)["params"][0]
        return responses[call["data"][:10]]

    rpc = RPC("http://node.test", transport=httpx.MockTransport(handler))
    return PriceFeedReader(rpc, OracleConfig()), rpc


def test_encode_address_call() -> None:
    data = encode_address_call(FETCH_PRICE_SIGNATURE, DEFAULT_ASSET)
    assert data.startswith(FETCH)
    assert len(data) == 10 + 64
    assert data.endswith(DEFAULT_ASSET[2:])


@pytest.mark.asyncio
async def test_live_price() -> None:
    reader, rpc = _reader({FETCH: _ok(encode_words(65_000 * 10**8))})
    try:
        obs = await reader.read_price()
    finally:
        await rpc.aclose()

    assert obs.price == Decimal(65_000)
    assert obs.price_raw == 65_000 * 10**8
    assert not obs.frozen


@pytest.mark.asyncio
async def test_frozen_feed_falls_back_to_cached_record() -> None:
    frozen_revert = FROZEN + DEFAULT_ASSET[2:].rjust(64, "0")
    reader, rpc = _reader(
        {
            FETCH: _revert(frozen_revert),
            RECORDS: _ok(encode_words(64_000 * 10**8, 1_700_000_000, 1_700_000_100, 42)),
        }
    )
    try:
        obs = await reader.read_price()
    finally:
        await rpc.aclose()

    assert obs.frozen
    assert obs.feed_error == "Feed is frozen"
    assert obs.price == Decimal(64_000)
    assert obs.last_updated == 1_700_000_100


@pytest.mark.asyncio
async def test_frozen_feed_without_record_is_unavailable() -> None:
    reader, rpc = _reader(
        {
            FETCH: _revert(FROZEN + "00" * 32),
            RECORDS: _ok(encode_words(0, 0, 0, 0)),
        }
    )
    try:
        with pytest.raises(PriceUnavailable):
            await reader.read_price()
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_other_revert_is_unavailable() -> None:
    reader, rpc = _reader({FETCH: _revert("0x08c379a0" + "00" * 32)})
    try:
        with pytest.raises(PriceUnavailable):
            await reader.read_price()
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_revert_without_data_is_unavailable() -> None:
    reader, rpc = _reader({FETCH: _revert(None)})
    try:
        with pytest.raises(PriceUnavailable):
            await reader.read_price()
    finally:
        await rpc.aclose()


@pytest.mark.asyncio
async def test_price_record_decodes_words() -> None:
    reader, rpc = _reader({RECORDS: _ok(encode_words(5, 6, 7, 8))})
    try:
        rec = await reader.price_record(DEFAULT_ASSET)
    finally:
        await rpc.aclose()

    assert (rec.scaled_price, rec.timestamp, rec.last_updated, rec.round_id) == (5, 6, 7, 8)


@pytest.mark.asyncio
async def test_oracle_status_decodes_record() -> None:
    chainlink = "0x" + "cd" * 20
    reader, rpc = _reader(
        {ORACLE: _ok(encode_words(int(chainlink, 16), 8, 3600, 0x12345678 << 224, 18, 1, 0))}
    )
    try:
        status = await reader.oracle_status()
    finally:
        await rpc.aclose()

    assert status.chainlink_oracle == chainlink
    assert (status.decimals, status.heartbeat) == (8, 3600)
    assert status.share_price_signature == "0x12345678"
    assert status.share_price_decimals == 18
    assert status.is_feed_working
    assert not status.is_eth_indexed


@pytest.mark.asyncio
async def test_oracle_status_short_return_is_unavailable() -> None:
    reader, rpc = _reader({ORACLE: _ok(encode_words(1, 2, 3))})
    try:
        with pytest.raises(PriceUnavailable):
            await reader.oracle_status(DEFAULT_ASSET)
    finally:
        await rpc.aclose()
