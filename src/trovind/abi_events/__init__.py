"""Decoding table loading from contract ABI JSON files.

ABI entries are validated with pydantic; only non-anonymous `event` entries
are kept. Both bare ABI lists and Hardhat/Foundry artifacts (`{"abi": [...]}`)
are accepted.
"""

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from eth_utils.abi import event_signature_to_log_topic
from pydantic import BaseModel

from trovind.core.config import ContractSource
from trovind.decoding.registry import add_many, make_table
from trovind.decoding.registry_builder import make_registry
from trovind.decoding.specs import DataFieldSpec, DecodingTable, EventRegistry, EventSpec, TopicFieldSpec


class AbiInput(BaseModel):
    indexed: bool = False
    internalType: str = ""
    name: str
    type: str


class AbiEvent(BaseModel):
    anonymous: bool = False
    inputs: Sequence[AbiInput]
    name: str
    type: Literal["event"]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(i.type for i in self.inputs)})"

    @property
    def topic0(self) -> str:
        return "0x" + event_signature_to_log_topic(self.signature).hex()

    def to_spec(self) -> EventSpec:
        topics = [i for i in self.inputs if i.indexed]
        words = [i for i in self.inputs if not i.indexed]
        return EventSpec(
            topic0=self.topic0,
            name=self.name,
            topic_fields=[TopicFieldSpec(i.name, n, i.type) for n, i in enumerate(topics, start=1)],
            data_fields=[DataFieldSpec(i.name, n, i.type) for n, i in enumerate(words)],
        )


AbiSource = Iterable[dict[str, Any]] | Path


def _entries(abi: AbiSource) -> Iterable[dict[str, Any]]:
    if not isinstance(abi, Path):
        return abi
    data = json.loads(abi.read_text())
    return data["abi"] if isinstance(data, dict) else data


def load_abi_events(abi: AbiSource) -> dict[str, AbiEvent]:
    """Return the ABI's events keyed by name."""
    return {
        entry["name"]: AbiEvent.model_validate(entry)
        for entry in _entries(abi)
        if entry.get("type") == "event" and not entry.get("anonymous", False)
    }


def registry_from_abi(abi: AbiSource) -> EventRegistry:
    reg: EventRegistry = {}
    add_many(reg, (event.to_spec() for event in load_abi_events(abi).values()))
    return reg


def registry_for_source(source: ContractSource) -> EventRegistry:
    """Signature entries first, then ABI entries (ABI wins on collisions)."""
    reg = make_registry(source.signatures)
    if source.abi is not None:
        reg.update(registry_from_abi(source.abi))
    return reg


def build_decoding_table(sources: Iterable[ContractSource]) -> DecodingTable:
    """Load every watched contract's schema into one (address, topic0) table."""
    return make_table({source.address: registry_for_source(source) for source in sources})
