"""Event spec primitives and decoding table typing.

Defines lightweight dataclasses to describe how to decode events:
- `TopicFieldSpec` / `DataFieldSpec`: typed sources for indexed topics / data words
- `EventSpec`: one event rule (topic0, name, fields)
- `EventRegistry`: mapping from topic0 → EventSpec (one contract's schema)
- `DecodingTable`: mapping from (contract address, topic0) → EventSpec
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TopicFieldSpec:
    """Describe one indexed topic field (by 1-based topic index and ABI type)."""

    name: str
    index: int
    type: str  # e.g., "address", "uint256", "int24", "bytes32"


@dataclass(frozen=True)
class DataFieldSpec:
    """Describe one 32-byte ABI word in the data section (0-based word index)."""

    name: str
    word_index: int
    type: str  # e.g., "address", "uint256", "uint8"


@dataclass(frozen=True)
class EventSpec:
    """One event decoding rule."""

    topic0: str
    name: str
    topic_fields: list[TopicFieldSpec] = field(default_factory=list)
    data_fields: list[DataFieldSpec] = field(default_factory=list)

    def __post_init__(self) -> None:
        names = [f.name for f in self.topic_fields] + [f.name for f in self.data_fields]
        if len(names) != len(set(names)):
            raise ValueError(f"{self.name} declares duplicate field names: {names}")
        for tf in self.topic_fields:
            if not 1 <= tf.index <= 3:
                raise ValueError(f"{self.name}.{tf.name} topic index must be within [1, 3]")

    @property
    def words_needed(self) -> int:
        """Minimum payload size in 32-byte words."""
        if not self.data_fields:
            return 0
        return max(df.word_index for df in self.data_fields) + 1


# One contract's schema keyed by topic0 (lowercased 0x-hex).
EventRegistry = dict[str, EventSpec]

# Keyed by (lowercased contract address, lowercased topic0).
DecodingTable = Mapping[tuple[str, str], EventSpec]

