"""Builders for raw logs shaped like `eth_getLogs` output."""

from __future__ import annotations

from trovind.core.constants import TROVE_UPDATED_SIGNATURE
from trovind.core.models import EventLog
from trovind.decoding.registry_builder import event_spec_from_signature

E18 = 10**18

TROVE_MANAGER = "0x" + "11" * 20
BORROWER_OPERATIONS = "0x" + "22" * 20
WALLET = "0x" + "a".rjust(40, "0")
ASSET = "0x" + "b".rjust(40, "0")

BASE_RATE_SIGNATURE = "BaseRateUpdated(uint256 _baseRate)"
TROVE_UPDATED_T0 = event_spec_from_signature(TROVE_UPDATED_SIGNATURE).topic0
BASE_RATE_T0 = event_spec_from_signature(BASE_RATE_SIGNATURE).topic0


def address_topic(addr: str) -> str:
    return "0x" + addr.lower().removeprefix("0x").rjust(64, "0")


def encode_words(*values: int) -> str:
    return "0x" + "".join(f"{v:064x}" for v in values)


def tx(n: int) -> str:
    return "0x" + f"{n:064x}"


def trove_log(
    *,
    debt: int,
    coll: int,
    operation: int,
    block: int,
    log_index: int = 0,
    tx_hash: str | None = None,
    wallet: str = WALLET,
    asset: str = ASSET,
    stake: int = 0,
    address: str = TROVE_MANAGER,
    block_timestamp: int | None = None,
) -> EventLog:
    return EventLog(
        address=address,
        topics=(TROVE_UPDATED_T0, address_topic(wallet), address_topic(asset)),
        data_hex=encode_words(debt, coll, stake, operation),
        block_number=block,
        tx_hash=tx_hash or tx(block * 1_000 + log_index),
        log_index=log_index,
        block_timestamp=block_timestamp,
    )


def raw_log(log: EventLog) -> dict:
    """Render an EventLog back into a JSON-RPC log object."""
    return {
        "address": log.address,
        "topics": list(log.topics),
        "data": log.data_hex,
        "blockNumber": hex(log.block_number),
        "transactionHash": log.tx_hash,
        "logIndex": hex(log.log_index),
    }
