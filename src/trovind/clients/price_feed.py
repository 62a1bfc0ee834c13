"""Two-tier price oracle reader.

`fetchPrice(token)` is tried first. If it reverts with the feed-frozen custom
error, the last cached `priceRecords(token)` entry is used instead and the
observation is flagged `frozen`. Any other failure raises `PriceUnavailable`.
`oracle_status` exposes the feed configuration for diagnostics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from eth_utils import keccak

from trovind.core.config import OracleConfig
from trovind.core.constants import (
    FETCH_PRICE_SIGNATURE,
    ORACLE_RECORDS_SIGNATURE,
    PRICE_RECORDS_SIGNATURE,
)
from trovind.core.errors import ContractCallError, PriceUnavailable, TransientFetchError
from trovind.clients.rpc import RPC
from trovind.decoding.utils import hex_to_bytes, parse_data_word, word_at

logger = logging.getLogger(__name__)


def selector(signature: str) -> str:
    """Return the 4-byte function/error selector as 0x-hex."""
    return "0x" + keccak(text=signature)[:4].hex()


def encode_address_call(signature: str, address: str) -> str:
    """ABI-encode a call taking a single address argument."""
    return selector(signature) + address.lower().removeprefix("0x").rjust(64, "0")


@dataclass(frozen=True)
class PriceObservation:
    price_raw: int
    price: Decimal
    frozen: bool = False
    feed_error: str | None = None
    last_updated: int = 0


@dataclass(frozen=True)
class PriceRecord:
    scaled_price: int
    timestamp: int
    last_updated: int
    round_id: int


@dataclass(frozen=True)
class OracleStatus:
    """Configuration and health flags of the feed behind one token."""

    chainlink_oracle: str
    decimals: int
    heartbeat: int
    share_price_signature: str
    share_price_decimals: int
    is_feed_working: bool
    is_eth_indexed: bool


class PriceFeedReader:
    """Reads the collateral price from the protocol's price feed contract."""

    def __init__(self, rpc: RPC, config: OracleConfig) -> None:
        self._rpc = rpc
        self._config = config
        self._frozen_selector = selector(config.frozen_error_signature)

    def _scale(self, raw: int) -> Decimal:
        return Decimal(raw) / (Decimal(10) ** self._config.price_decimals)

    def _is_frozen(self, err: ContractCallError) -> bool:
        return bool(err.data) and err.data.lower().startswith(self._frozen_selector)

    async def _read_record(self, signature: str, token: str, words: int) -> bytes:
        name = signature.split("(")[0]
        try:
            out = await self._rpc.eth_call(
                to=self._config.price_feed,
                data=encode_address_call(signature, token),
            )
            data = hex_to_bytes(out)
        except (ContractCallError, TransientFetchError, ValueError) as e:
            raise PriceUnavailable(f"{name}({token}) failed: {e}") from e
        if len(data) < 32 * words:
            raise PriceUnavailable(f"{name}({token}) returned {len(data)} bytes")
        return data

    async def price_record(self, token: str) -> PriceRecord:
        data = await self._read_record(PRICE_RECORDS_SIGNATURE, token, 4)
        return PriceRecord(
            scaled_price=parse_data_word(word_at(data, 0), "uint96"),
            timestamp=parse_data_word(word_at(data, 1), "uint32"),
            last_updated=parse_data_word(word_at(data, 2), "uint32"),
            round_id=parse_data_word(word_at(data, 3), "uint80"),
        )

    async def oracle_status(self, token: str | None = None) -> OracleStatus:
        """Read `oracleRecords(token)`: the configured feed and its health flags."""
        token = (token or self._config.asset).lower()
        data = await self._read_record(ORACLE_RECORDS_SIGNATURE, token, 7)
        return OracleStatus(
            chainlink_oracle=parse_data_word(word_at(data, 0), "address"),
            decimals=parse_data_word(word_at(data, 1), "uint8"),
            heartbeat=parse_data_word(word_at(data, 2), "uint32"),
            share_price_signature="0x" + word_at(data, 3)[:4].hex(),  # bytes4 is left-aligned
            share_price_decimals=parse_data_word(word_at(data, 4), "uint8"),
            is_feed_working=parse_data_word(word_at(data, 5), "bool"),
            is_eth_indexed=parse_data_word(word_at(data, 6), "bool"),
        )

    async def read_price(self, token: str | None = None) -> PriceObservation:
        token = (token or self._config.asset).lower()
        frozen = False
        feed_error: str | None = None
        price_raw = 0

        try:
            out = await self._rpc.eth_call(
                to=self._config.price_feed,
                data=encode_address_call(FETCH_PRICE_SIGNATURE, token),
            )
            price_raw = parse_data_word(word_at(hex_to_bytes(out), 0), "uint256")
        except ContractCallError as e:
            if not self._is_frozen(e):
                raise PriceUnavailable(f"fetchPrice({token}) failed: {e}") from e
            frozen = True
            feed_error = "Feed is frozen"
            logger.warning("price feed frozen token=%s; falling back to cached record", token)
        except (TransientFetchError, ValueError) as e:
            raise PriceUnavailable(f"fetchPrice({token}) failed: {e}") from e

        if price_raw:
            return PriceObservation(price_raw=price_raw, price=self._scale(price_raw))

        rec = await self.price_record(token)
        if rec.scaled_price == 0:
            raise PriceUnavailable(f"no cached price record for {token}")
        return PriceObservation(
            price_raw=rec.scaled_price,
            price=self._scale(rec.scaled_price),
            frozen=frozen,
            feed_error=feed_error,
            last_updated=rec.last_updated or rec.timestamp,
        )
