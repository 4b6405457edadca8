import sqlite3
from pathlib import Path

def get_conn(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, isolation_level=None, timeout=30.0)  # autocommit
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA busy_timeout=30000;")
    return conn

_NOW = "(strftime('%Y-%m-%dT%H:%M:%fZ','now'))"

DDL = [
    # Wallet allocation ledger (append-only, corrections are new rows)
    f"""
CREATE TABLE IF NOT EXISTS wallet_allocations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  symbol TEXT NOT NULL,
  group_name TEXT,
  barca TEXT,
  target_percent REAL,
  current_quantity REAL,
  last_price REAL,
  notes TEXT,
  created_at TEXT NOT NULL DEFAULT {_NOW}
);
""",
    "CREATE INDEX IF NOT EXISTS ix_wallet_allocations_symbol_time ON wallet_allocations(symbol, created_at);",

    # Current ledger: a wallet is (symbol, group, barca, notes); each wallet keeps the rows of its
    # latest created_at, and wallets are then summed per (symbol, group, barca)
    "DROP VIEW IF EXISTS wallet_allocations_current;",
    """
CREATE VIEW wallet_allocations_current AS
SELECT
  MAX(w.id) AS id,
  w.symbol AS symbol,
  w.group_name AS group_name,
  w.barca AS barca,
  SUM(w.target_percent) AS target_percent,
  SUM(w.current_quantity) AS current_quantity,
  MAX(w.last_price) AS last_price,
  GROUP_CONCAT(w.notes, '; ') AS notes,
  MAX(w.created_at) AS created_at
FROM wallet_allocations w
JOIN (
  SELECT
    symbol,
    COALESCE(group_name, '') AS group_key,
    COALESCE(barca, '') AS barca_key,
    COALESCE(notes, '') AS wallet_key,
    MAX(created_at) AS latest_at
  FROM wallet_allocations
  GROUP BY symbol, group_key, barca_key, wallet_key
) latest
  ON latest.symbol = w.symbol
 AND latest.group_key = COALESCE(w.group_name, '')
 AND latest.barca_key = COALESCE(w.barca, '')
 AND latest.wallet_key = COALESCE(w.notes, '')
 AND latest.latest_at = w.created_at
GROUP BY w.symbol, w.group_name, w.barca;
""",

    # Audit of every computed report (write-once)
    f"""
CREATE TABLE IF NOT EXISTS allocations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  computed_at TEXT NOT NULL,
  payload TEXT NOT NULL,
  created_at TEXT NOT NULL DEFAULT {_NOW}
);
""",

    # Per-asset history
    f"""
CREATE TABLE IF NOT EXISTS history_assets (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  symbol TEXT NOT NULL,
  group_name TEXT NOT NULL DEFAULT '',
  barca TEXT NOT NULL DEFAULT '',
  price REAL,
  current_quantity REAL,
  value REAL,
  target_percent REAL,
  current_percent REAL,
  market_cap REAL,
  fdv REAL,
  volume_24h REAL,
  percent_change_24h REAL,
  percent_change_7d REAL,
  extra TEXT,
  created_at TEXT NOT NULL DEFAULT {_NOW}
);
""",
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_history_assets_key ON history_assets(timestamp, symbol, group_name, barca);",

    # Per-group history
    f"""
CREATE TABLE IF NOT EXISTS history_groups (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  group_name TEXT NOT NULL,
  value REAL,
  current_percent REAL,
  target_percent REAL,
  extra TEXT,
  created_at TEXT NOT NULL DEFAULT {_NOW}
);
""",
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_history_groups_key ON history_groups(timestamp, group_name);",

    # Per-barca history
    f"""
CREATE TABLE IF NOT EXISTS history_barca (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  barca TEXT NOT NULL,
  value REAL,
  current_percent REAL,
  target_percent REAL,
  extra TEXT,
  created_at TEXT NOT NULL DEFAULT {_NOW}
);
""",
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_history_barca_key ON history_barca(timestamp, barca);",

    # Wallet totals (one row per timestamp, replaced on conflict)
    f"""
CREATE TABLE IF NOT EXISTS history_totals (
  timestamp TEXT PRIMARY KEY,
  total_value REAL,
  extra TEXT,
  created_at TEXT NOT NULL DEFAULT {_NOW}
);
""",

    """
CREATE VIEW IF NOT EXISTS asset_variance_history AS
SELECT
  a.timestamp AS timestamp,
  a.symbol AS symbol,
  a.group_name AS group_name,
  a.barca AS barca,
  a.price AS price,
  a.current_quantity AS current_quantity,
  a.value AS value,
  a.target_percent AS target_percent,
  a.current_percent AS current_percent,
  a.current_percent - a.target_percent AS deviation_percent,
  a.value - (t.total_value * a.target_percent / 100.0) AS value_deviation
FROM history_assets a
LEFT JOIN history_totals t ON t.timestamp = a.timestamp;
""",
    """
CREATE VIEW IF NOT EXISTS group_variance_history AS
SELECT
  timestamp, group_name, value, current_percent, target_percent,
  current_percent - target_percent AS deviation_percent
FROM history_groups;
""",
    """
CREATE VIEW IF NOT EXISTS barca_variance_history AS
SELECT
  timestamp, barca, value, current_percent, target_percent,
  current_percent - target_percent AS deviation_percent
FROM history_barca;
""",
]

def migrate(conn: sqlite3.Connection):
    cur = conn.cursor()
    for stmt in DDL:
        cur.execute(stmt)
    conn.commit()
