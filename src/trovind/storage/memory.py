from __future__ import annotations

import copy
from collections.abc import Collection

from trovind.core.errors import DuplicateIdentity, PositionNotFound
from trovind.core.models import DomainEvent, HistoryEntry, Position, PositionState, PositionStatus


class InMemoryPositionStore:
    """Process-local position store.

    Backs tests and `--store memory` runs. Positions are kept in insertion
    order; returned objects are copies so callers cannot mutate the store.
    """

    def __init__(self) -> None:
        self._positions: dict[int, Position] = {}
        self._applied: set[tuple[str, int]] = set()
        self.events: list[DomainEvent] = []
        self._event_keys: set[tuple[str, int]] = set()

    def next_identity(self) -> int:
        return max(self._positions, default=0) + 1

    def insert(self, position: Position) -> None:
        if position.position_id in self._positions:
            raise DuplicateIdentity(f"position id {position.position_id} already exists")
        self._positions[position.position_id] = copy.deepcopy(position)
        self._applied.update((h.tx_hash, h.log_index) for h in position.history)

    def _latest(
        self,
        wallet: str,
        asset: str,
        statuses: Collection[PositionStatus] | None,
    ) -> Position | None:
        matches = [
            p
            for p in self._positions.values()
            if p.wallet_address == wallet
            and p.asset == asset
            and (statuses is None or p.status in statuses)
        ]
        return max(matches, key=lambda p: p.position_id, default=None)

    def find_latest(
        self,
        wallet: str,
        asset: str,
        statuses: Collection[PositionStatus] | None = None,
    ) -> Position | None:
        found = self._latest(wallet, asset, statuses)
        return copy.deepcopy(found) if found is not None else None

    def update_latest(
        self,
        wallet: str,
        asset: str,
        statuses: Collection[PositionStatus] | None,
        state: PositionState,
        entry: HistoryEntry,
    ) -> Position:
        found = self._latest(wallet, asset, statuses)
        if found is None:
            raise PositionNotFound("no matching position", wallet=wallet, asset=asset)
        found.apply(state, entry)
        self._applied.add((entry.tx_hash, entry.log_index))
        return copy.deepcopy(found)

    def has_applied(self, tx_hash: str, log_index: int) -> bool:
        return (tx_hash, log_index) in self._applied

    def append_event(self, event: DomainEvent) -> None:
        if event.key in self._event_keys:
            return
        self._event_keys.add(event.key)
        self.events.append(event)

    def get(self, position_id: int) -> Position | None:
        found = self._positions.get(position_id)
        return copy.deepcopy(found) if found is not None else None

    def list_positions(self, status: PositionStatus | None = None) -> list[Position]:
        return [
            copy.deepcopy(p)
            for p in sorted(self._positions.values(), key=lambda p: p.position_id)
            if status is None or p.status is status
        ]
