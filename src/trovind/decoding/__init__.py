"""Event decoding.

This package provides:
- Event spec primitives (EventSpec, TopicFieldSpec, DataFieldSpec)
- Signature-based registry building and the (contract, topic0) DecodingTable
- Decoder that translates raw logs into typed domain events
"""

from trovind.decoding.decoder import EVENT_VARIANTS, decode_event, resolve_spec
from trovind.decoding.registry import (
    DecodingTableProvider,
    add_event_spec,
    add_many,
    make_table,
    table_topic0s,
)
from trovind.decoding.registry_builder import event_spec_from_signature, make_registry
from trovind.decoding.specs import (
    DataFieldSpec,
    DecodingTable,
    EventRegistry,
    EventSpec,
    TopicFieldSpec,
)

__all__ = [
    "EVENT_VARIANTS",
    "decode_event",
    "resolve_spec",
    "DecodingTableProvider",
    "add_event_spec",
    "add_many",
    "make_table",
    "table_topic0s",
    "event_spec_from_signature",
    "make_registry",
    "DataFieldSpec",
    "DecodingTable",
    "EventRegistry",
    "EventSpec",
    "TopicFieldSpec",
]
