"""
sql_queries.py
--------------

SQL statements for the DuckDB position store. Kept apart from the store so
the persistence logic in `duckdb_store.py` reads as plain Python.

Amounts are stored as VARCHAR renderings of `Decimal` to keep them exact.
"""

# =====================================================================
# SCHEMA
# =====================================================================

CREATE_POSITIONS = """
CREATE TABLE IF NOT EXISTS positions (
    position_id     BIGINT PRIMARY KEY,
    wallet_address  VARCHAR NOT NULL,
    asset           VARCHAR NOT NULL,
    coll            VARCHAR NOT NULL,
    debt            VARCHAR NOT NULL,
    nltv            VARCHAR NOT NULL,
    status          VARCHAR NOT NULL,
    block_number    UBIGINT NOT NULL
);
"""

CREATE_POSITION_HISTORY = """
CREATE TABLE IF NOT EXISTS position_history (
    position_id     BIGINT NOT NULL,
    seq             INTEGER NOT NULL,
    tx_hash         VARCHAR NOT NULL,
    log_index       BIGINT NOT NULL,
    coll            VARCHAR NOT NULL,
    debt            VARCHAR NOT NULL,
    tx_type         VARCHAR NOT NULL,
    ts              VARCHAR NOT NULL,
    block_number    UBIGINT NOT NULL,
    PRIMARY KEY (position_id, seq),
    UNIQUE (tx_hash, log_index)
);
"""

CREATE_EVENT_LOG = """
CREATE TABLE IF NOT EXISTS event_log (
    tx_hash         VARCHAR NOT NULL,
    log_index       BIGINT NOT NULL,
    block_number    UBIGINT NOT NULL,
    contract        VARCHAR NOT NULL,
    event           VARCHAR NOT NULL,
    decoded_data    VARCHAR NOT NULL,
    recorded_at     TIMESTAMP NOT NULL DEFAULT current_timestamp,
    PRIMARY KEY (tx_hash, log_index)
);
"""

SCHEMA = (CREATE_POSITIONS, CREATE_POSITION_HISTORY, CREATE_EVENT_LOG)


# =====================================================================
# POSITIONS
# =====================================================================

POSITION_COLUMNS = "position_id, wallet_address, asset, coll, debt, nltv, status, block_number"

NEXT_IDENTITY = "SELECT COALESCE(MAX(position_id), 0) + 1 FROM positions;"

INSERT_POSITION = f"INSERT INTO positions ({POSITION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?);"

SELECT_POSITION = f"SELECT {POSITION_COLUMNS} FROM positions WHERE position_id = ?;"

SELECT_LATEST_FOR_PAIR = f"""
SELECT {POSITION_COLUMNS}
FROM positions
WHERE wallet_address = ? AND asset = ?{{status_clause}}
ORDER BY position_id DESC
LIMIT 1;
"""

SELECT_POSITIONS = f"SELECT {POSITION_COLUMNS} FROM positions{{status_clause}} ORDER BY position_id;"

UPDATE_POSITION_STATE = """
UPDATE positions
SET coll = ?, debt = ?, nltv = ?, status = ?, block_number = ?
WHERE position_id = ?;
"""


# =====================================================================
# HISTORY
# =====================================================================

HISTORY_COLUMNS = "tx_hash, log_index, coll, debt, tx_type, ts, block_number"

NEXT_HISTORY_SEQ = "SELECT COALESCE(MAX(seq), 0) + 1 FROM position_history WHERE position_id = ?;"

INSERT_HISTORY = f"""
INSERT INTO position_history (position_id, seq, {HISTORY_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

SELECT_HISTORY = f"""
SELECT {HISTORY_COLUMNS}
FROM position_history
WHERE position_id = ?
ORDER BY seq;
"""

HAS_APPLIED = "SELECT 1 FROM position_history WHERE tx_hash = ? AND log_index = ? LIMIT 1;"


# =====================================================================
# RAW EVENT AUDIT LOG
# =====================================================================

INSERT_EVENT = """
INSERT OR IGNORE INTO event_log (tx_hash, log_index, block_number, contract, event, decoded_data)
VALUES (?, ?, ?, ?, ?, ?);
"""

COUNT_EVENTS = "SELECT COUNT(*) FROM event_log;"
