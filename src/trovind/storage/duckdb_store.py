"""
duckdb_store.py
---------------

Durable position store backed by a single DuckDB database file.

Tables:
    - positions         current state, one row per position id
    - position_history  append-only history, unique per (tx_hash, log_index)
    - event_log         append-only raw audit log of every decoded event

Every write runs inside one transaction, so a position's state change and
its history append land together or not at all.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Collection, Iterator, Sequence
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any

import duckdb

from trovind.core.errors import DuplicateIdentity, PersistenceError, PositionNotFound
from trovind.core.models import (
    DomainEvent,
    HistoryEntry,
    Operation,
    Position,
    PositionState,
    PositionStatus,
    format_amount,
)

from . import sql_queries

logger = logging.getLogger(__name__)


def _status_clause(statuses: Collection[PositionStatus] | None, *, where: bool) -> tuple[str, list[str]]:
    if statuses is None:
        return "", []
    placeholders = ", ".join("?" for _ in statuses)
    keyword = "WHERE" if where else "AND"
    return f" {keyword} status IN ({placeholders})", [s.value for s in statuses]


class DuckDBPositionStore:
    """Position repository on DuckDB.

    Args:
        path: Database file, or ":memory:" for a throwaway store.
    """

    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._con = duckdb.connect(self.path)
        for ddl in sql_queries.SCHEMA:
            self._con.execute(ddl)

    def close(self) -> None:
        self._con.close()

    # -----------------------------------------------------------------
    # helpers
    # -----------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        self._con.begin()
        try:
            yield self._con
        except BaseException:
            self._con.rollback()
            raise
        self._con.commit()

    def _fetchone(self, query: str, params: Sequence[Any] = ()) -> tuple[Any, ...] | None:
        try:
            return self._con.execute(query, list(params)).fetchone()
        except duckdb.Error as e:
            raise PersistenceError(f"query failed: {e}") from e

    def _history(self, position_id: int) -> list[HistoryEntry]:
        rows = self._con.execute(sql_queries.SELECT_HISTORY, [position_id]).fetchall()
        return [
            HistoryEntry(
                tx_hash=tx_hash,
                log_index=int(log_index),
                coll=Decimal(coll),
                debt=Decimal(debt),
                operation=Operation(tx_type),
                timestamp=ts,
                block_number=int(block_number),
            )
            for tx_hash, log_index, coll, debt, tx_type, ts, block_number in rows
        ]

    def _position(self, row: tuple[Any, ...]) -> Position:
        position_id, wallet, asset, coll, debt, nltv, status, block_number = row
        return Position(
            position_id=int(position_id),
            wallet_address=wallet,
            asset=asset,
            coll=Decimal(coll),
            debt=Decimal(debt),
            nltv=Decimal(nltv),
            status=PositionStatus(status),
            block_number=int(block_number),
            history=self._history(int(position_id)),
        )

    @staticmethod
    def _insert_history(con: duckdb.DuckDBPyConnection, position_id: int, entry: HistoryEntry) -> None:
        (seq,) = con.execute(sql_queries.NEXT_HISTORY_SEQ, [position_id]).fetchone()
        con.execute(
            sql_queries.INSERT_HISTORY,
            [
                position_id,
                seq,
                entry.tx_hash,
                entry.log_index,
                format_amount(entry.coll),
                format_amount(entry.debt),
                entry.operation.value,
                entry.timestamp,
                entry.block_number,
            ],
        )

    # -----------------------------------------------------------------
    # IPositionRepository
    # -----------------------------------------------------------------

    def next_identity(self) -> int:
        row = self._fetchone(sql_queries.NEXT_IDENTITY)
        return int(row[0]) if row else 1

    def insert(self, position: Position) -> None:
        if self.get(position.position_id) is not None:
            raise DuplicateIdentity(f"position id {position.position_id} already exists")
        try:
            with self._transaction() as con:
                con.execute(
                    sql_queries.INSERT_POSITION,
                    [
                        position.position_id,
                        position.wallet_address,
                        position.asset,
                        format_amount(position.coll),
                        format_amount(position.debt),
                        str(position.nltv),
                        position.status.value,
                        position.block_number,
                    ],
                )
                for entry in position.history:
                    self._insert_history(con, position.position_id, entry)
        except duckdb.ConstraintException as e:
            raise PersistenceError(f"insert of position {position.position_id} rejected: {e}") from e
        except duckdb.Error as e:
            raise PersistenceError(f"insert of position {position.position_id} failed: {e}") from e

    def find_latest(
        self,
        wallet: str,
        asset: str,
        statuses: Collection[PositionStatus] | None = None,
    ) -> Position | None:
        clause, params = _status_clause(statuses, where=False)
        row = self._fetchone(
            sql_queries.SELECT_LATEST_FOR_PAIR.format(status_clause=clause),
            [wallet, asset, *params],
        )
        return self._position(row) if row else None

    def update_latest(
        self,
        wallet: str,
        asset: str,
        statuses: Collection[PositionStatus] | None,
        state: PositionState,
        entry: HistoryEntry,
    ) -> Position:
        clause, params = _status_clause(statuses, where=False)
        query = sql_queries.SELECT_LATEST_FOR_PAIR.format(status_clause=clause)
        try:
            with self._transaction() as con:
                row = con.execute(query, [wallet, asset, *params]).fetchone()
                if row is None:
                    raise PositionNotFound("no matching position", wallet=wallet, asset=asset)
                position_id = int(row[0])
                con.execute(
                    sql_queries.UPDATE_POSITION_STATE,
                    [
                        format_amount(state.coll),
                        format_amount(state.debt),
                        str(state.nltv),
                        state.status.value,
                        state.block_number,
                        position_id,
                    ],
                )
                self._insert_history(con, position_id, entry)
        except duckdb.Error as e:
            raise PersistenceError(f"update of ({wallet}, {asset}) failed: {e}") from e

        updated = self.get(position_id)
        assert updated is not None
        return updated

    def has_applied(self, tx_hash: str, log_index: int) -> bool:
        return self._fetchone(sql_queries.HAS_APPLIED, [tx_hash, log_index]) is not None

    def append_event(self, event: DomainEvent) -> None:
        try:
            self._con.execute(
                sql_queries.INSERT_EVENT,
                [
                    event.meta.tx_hash,
                    event.meta.log_index,
                    event.meta.block_number,
                    event.contract,
                    event.name,
                    json.dumps(dict(event.values), default=str, sort_keys=True),
                ],
            )
        except duckdb.Error as e:
            raise PersistenceError(f"audit insert of {event.key} failed: {e}") from e

    def get(self, position_id: int) -> Position | None:
        row = self._fetchone(sql_queries.SELECT_POSITION, [position_id])
        return self._position(row) if row else None

    def list_positions(self, status: PositionStatus | None = None) -> list[Position]:
        clause, params = _status_clause(None if status is None else [status], where=True)
        try:
            rows = self._con.execute(sql_queries.SELECT_POSITIONS.format(status_clause=clause), params).fetchall()
        except duckdb.Error as e:
            raise PersistenceError(f"listing positions failed: {e}") from e
        return [self._position(row) for row in rows]

    def count_events(self) -> int:
        row = self._fetchone(sql_queries.COUNT_EVENTS)
        return int(row[0]) if row else 0
