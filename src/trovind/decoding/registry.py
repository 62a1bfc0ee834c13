"""Decoding table assembly.

This module exposes:
- `add_event_spec(registry, spec)` → insert one spec (lowercases key)
- `add_many(registry, specs)` → insert multiple
- `make_table(registries)` → merge per-contract registries into a DecodingTable
- `DecodingTableProvider` → static provider used by the ingest use case
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from trovind.core.interfaces import IDecodingTableProvider
from trovind.decoding.specs import DecodingTable, EventRegistry, EventSpec


def add_event_spec(registry: EventRegistry, spec: EventSpec) -> None:
    """Insert one spec into the registry keyed by lowercased topic0."""
    registry[spec.topic0.lower()] = spec


def add_many(registry: EventRegistry, specs: Iterable[EventSpec]) -> None:
    """Insert many specs into the registry."""
    for s in specs:
        add_event_spec(registry, s)


def make_table(registries: Mapping[str, EventRegistry]) -> dict[tuple[str, str], EventSpec]:
    """Key every spec by (contract address, topic0), both lowercased."""
    table: dict[tuple[str, str], EventSpec] = {}
    for address, registry in registries.items():
        for topic0, spec in registry.items():
            table[(address.lower(), topic0.lower())] = spec
    return table


def table_topic0s(table: DecodingTable) -> dict[str, str]:
    """Map each known topic0 to its event name (for diagnostics)."""
    return {topic0: spec.name for (_addr, topic0), spec in table.items()}


class DecodingTableProvider(IDecodingTableProvider):
    """
    Simple provider that always returns the same DecodingTable.

    This is the bridge between the schema loaders (ABIs/signatures) and the
    domain use case which only depends on the interface.
    """

    def __init__(self, table: DecodingTable) -> None:
        self._table = table

    def get_table(self) -> DecodingTable:
        return self._table
