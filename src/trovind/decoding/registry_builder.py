"""Build event registries from Solidity event signatures.

A signature looks like:

    "TroveUpdated(address indexed _borrower, uint256 _debt, uint8 _operation)"

Indexed parameters become topic fields (1-based, in declaration order) and the
rest become data words (0-based). topic0 is the keccak of the canonical
`Name(type1,type2,...)` form, with names and `indexed` dropped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from eth_utils import keccak

from .specs import DataFieldSpec, EventRegistry, EventSpec, TopicFieldSpec

_SIGNATURE_RE = re.compile(r"^\s*([A-Za-z_$][A-Za-z0-9_$]*)\s*\((.*)\)\s*$", re.DOTALL)

Param = tuple[str, str, bool]  # (name, abi type, indexed)


def _split_params(params: str) -> list[str]:
    """Split on top-level commas; tuple types keep their inner commas."""
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(params):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(params[start:i])
            start = i + 1
    parts.append(params[start:])
    return [p.strip() for p in parts if p.strip()]


def _parse_param(fragment: str, position: int) -> Param:
    """Parse one parameter; unnamed parameters are called `arg<position>`."""
    tokens = fragment.split()
    indexed = "indexed" in tokens[1:]
    tokens = [tokens[0], *(t for t in tokens[1:] if t != "indexed")]
    if len(tokens) == 1:
        return f"arg{position}", tokens[0], indexed
    return tokens[-1], " ".join(tokens[:-1]), indexed


def event_spec_from_signature(signature: str) -> EventSpec:
    """Build an EventSpec from a Solidity event signature string."""
    m = _SIGNATURE_RE.match(signature)
    if m is None:
        raise ValueError(f"Invalid event signature: {signature}")
    name, params = m.groups()

    parsed = [_parse_param(p, i) for i, p in enumerate(_split_params(params))]
    canonical = f"{name}({','.join(typ for _, typ, _ in parsed)})"
    topics = [(n, typ) for n, typ, indexed in parsed if indexed]
    words = [(n, typ) for n, typ, indexed in parsed if not indexed]

    return EventSpec(
        topic0="0x" + keccak(text=canonical).hex(),
        name=name,
        topic_fields=[TopicFieldSpec(n, i, typ) for i, (n, typ) in enumerate(topics, start=1)],
        data_fields=[DataFieldSpec(n, i, typ) for i, (n, typ) in enumerate(words)],
    )


def make_registry(signatures: str | Iterable[str]) -> EventRegistry:
    """Create a registry (topic0 → EventSpec) from one or many signatures."""
    if isinstance(signatures, str):
        signatures = [signatures]
    return {spec.topic0: spec for spec in map(event_spec_from_signature, signatures)}
