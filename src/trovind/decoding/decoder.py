"""Event decoder: raw log → typed domain event.

This module translates an `EventLog` into a `ContractEvent` (or one of its
typed variants such as `TroveUpdated`) using a `DecodingTable` keyed on
(contract address, topic0).

Outcomes
--------
- unresolved (no table entry, or no topics) → `None`; callers skip silently.
- resolved but malformed payload → `PayloadDecodeError`; callers log and skip.
- indexed topics missing from the log are not an error; the field is `None`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from trovind.core.constants import TROVE_UPDATED
from trovind.core.errors import PayloadDecodeError
from trovind.core.models import ContractEvent, DomainEvent, EventLog, Meta, TroveUpdated
from trovind.decoding.specs import DecodingTable, EventSpec
from trovind.decoding.utils import hex_to_bytes, parse_data_word, parse_topic, word_at

# ---------- typed variants ----------


def _field(values: Mapping[str, Any], name: str, *, required: bool = True) -> Any:
    """Look a field up by its normalized name (leading underscores ignored)."""
    for k, v in values.items():
        if k.lstrip("_") == name:
            return v
    if required:
        raise PayloadDecodeError(f"missing field {name!r}")
    return None


def _as_int(values: Mapping[str, Any], name: str, default: int | None = None) -> int:
    v = _field(values, name, required=default is None)
    if v is None:
        return default  # type: ignore[return-value]
    if not isinstance(v, int) or isinstance(v, bool):
        raise PayloadDecodeError(f"field {name!r} is not an integer: {v!r}")
    return v


def _trove_updated(base: dict[str, Any]) -> TroveUpdated:
    values = base["values"]
    return TroveUpdated(
        **base,
        debt=_as_int(values, "debt"),
        coll=_as_int(values, "coll"),
        stake=_as_int(values, "stake", default=0),
        operation=_as_int(values, "operation"),
    )


VariantFactory = Callable[[dict[str, Any]], DomainEvent]

EVENT_VARIANTS: dict[str, VariantFactory] = {
    TROVE_UPDATED: _trove_updated,
}


# ---------- helper functions ----------


def resolve_spec(log: EventLog, table: DecodingTable) -> EventSpec | None:
    """Return the spec for the log's (address, topic0), or None if unknown."""
    if not log.topics:
        return None
    return table.get((log.address.lower(), log.topics[0].lower()))


def _decode_values(spec: EventSpec, topics: tuple[str, ...], data: bytes) -> dict[str, Any]:
    values: dict[str, Any] = {}

    for tf in spec.topic_fields:
        if tf.index >= len(topics):
            values[tf.name] = None
            continue
        try:
            values[tf.name] = parse_topic(topics[tf.index], tf.type)
        except ValueError as e:
            raise PayloadDecodeError(f"{spec.name}.{tf.name}: {e}") from e

    if len(data) < 32 * spec.words_needed:
        raise PayloadDecodeError(
            f"{spec.name}: payload has {len(data)} bytes, expected at least {32 * spec.words_needed}"
        )
    for df in spec.data_fields:
        try:
            values[df.name] = parse_data_word(word_at(data, df.word_index), df.type)
        except ValueError as e:
            raise PayloadDecodeError(f"{spec.name}.{df.name}: {e}") from e
    return values


# ---------- main decoder ----------


def decode_event(log: EventLog, table: DecodingTable) -> DomainEvent | None:
    """Decode one raw log, or return None if the table does not know it."""
    spec = resolve_spec(log, table)
    if spec is None:
        return None

    try:
        data = hex_to_bytes(log.data_hex)
    except ValueError as e:
        raise PayloadDecodeError(f"{spec.name}: payload is not hex") from e

    base: dict[str, Any] = {
        "name": spec.name,
        "contract": log.address.lower(),
        "meta": Meta.from_log(log),
        "indexed": tuple(t.lower() for t in log.topics[1:]),
        "values": _decode_values(spec, log.topics, data),
    }
    factory = EVENT_VARIANTS.get(spec.name)
    if factory is None:
        return ContractEvent(**base)
    return factory(base)
