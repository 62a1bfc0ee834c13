"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block numbers

It returns `EventLog` records ready for downstream decoding. Every failure
(transport, HTTP status, JSON-RPC error, malformed response) surfaces as
`TransientFetchError` so the tailing scheduler can retry the whole range.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from trovind.core.errors import ContractCallError, TransientFetchError
from trovind.core.models import EventLog

logger = logging.getLogger(__name__)


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def _parse_int(v: Any) -> int | None:
    if isinstance(v, str):
        return int(v, 16) if v.startswith("0x") else int(v)
    if isinstance(v, int):
        return v
    return None


def parse_log(rl: dict[str, Any]) -> EventLog:
    """Map one `eth_getLogs` result entry to an `EventLog`."""
    topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
    return EventLog(
        address=rl["address"].lower(),
        topics=topics,
        data_hex=str(rl.get("data") or "0x"),
        block_number=int(rl["blockNumber"], 16),
        tx_hash=(rl.get("transactionHash") or rl.get("transaction_hash") or "").lower(),
        log_index=int(rl["logIndex"], 16),
        block_timestamp=_parse_int(rl.get("blockTimestamp")),
    )


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 8,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._id = 0
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=transport is None,
            transport=transport,
        )

    async def _request(self, method: str, params: list[Any]) -> dict[str, Any]:
        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        try:
            r = await self.client.post(self.url, json=payload)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransientFetchError(f"{method} failed: {type(e).__name__}: {e}") from e
        if not isinstance(data, dict):
            raise TransientFetchError(f"{method} returned a non-object response")
        return data

    async def _call(self, method: str, params: list[Any]) -> Any:
        data = await self._request(method, params)
        if "error" in data:
            e = data["error"]
            raise TransientFetchError(f"RPC error: {e.get('code')} {e.get('message')}")
        if "result" not in data:
            raise TransientFetchError(f"{method} response has no result")
        return data["result"]

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        result = await self._call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise TransientFetchError(f"eth_blockNumber returned {result!r}") from e

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Fetch every log emitted by `addresses` within an inclusive block range.

        The result is ordered by (block_number, log_index).
        """
        if from_block < 0 or to_block < from_block:
            raise ValueError(f"invalid block range [{from_block}, {to_block}]")
        params = [
            {
                "address": [a.lower() for a in addresses],
                "fromBlock": to_hex_block(from_block),
                "toBlock": to_hex_block(to_block),
            }
        ]
        result = await self._call("eth_getLogs", params)
        try:
            out = [parse_log(rl) for rl in result or []]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransientFetchError(f"malformed eth_getLogs entry: {e}") from e
        out.sort(key=lambda ev: ev.sort_key)
        logger.debug("eth_getLogs [%d, %d] -> %d logs", from_block, to_block, len(out))
        return out

    async def eth_call(self, *, to: str, data: str, block: str = "latest") -> str:
        """Execute a read-only call; reverts raise ContractCallError with the revert data."""
        resp = await self._request("eth_call", [{"to": to, "data": data}, block])
        if "error" in resp:
            e = resp["error"]
            revert = e.get("data")
            if isinstance(revert, dict):
                revert = revert.get("data")
            raise ContractCallError(
                f"eth_call reverted: {e.get('code')} {e.get('message')}",
                data=revert if isinstance(revert, str) else None,
            )
        return str(resp.get("result") or "0x")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
