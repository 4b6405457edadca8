from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from typing import Iterable, Protocol, runtime_checkable

from .db import get_conn, migrate
from .models import (
    AllocationRecord,
    AssetHistoryRow,
    AssetSnapshot,
    BarcaHistoryRow,
    BarcaSnapshot,
    GroupHistoryRow,
    GroupSnapshot,
    LedgerEntry,
    TotalHistoryRow,
    TotalSnapshot,
)
from .utils import dumps_or_none, now_utc_iso, to_utc_iso


@runtime_checkable
class HistoryRepo(Protocol):
    """Storage seen by the allocation pipeline.

    Snapshot inserts return True when a row was written and False when an
    identical (timestamp, key) row already existed.
    """

    def migrate(self): ...
    def stats(self) -> dict: ...

    def insert_asset_snapshot(self, snap: AssetSnapshot) -> bool: ...
    def insert_group_snapshot(self, snap: GroupSnapshot) -> bool: ...
    def insert_barca_snapshot(self, snap: BarcaSnapshot) -> bool: ...
    def insert_total_snapshot(self, snap: TotalSnapshot) -> bool: ...

    def fetch_assets(self, from_ts: str | None = None, to_ts: str | None = None) -> list[AssetHistoryRow]: ...
    def fetch_groups(self, from_ts: str | None = None, to_ts: str | None = None) -> list[GroupHistoryRow]: ...
    def fetch_barca(self, from_ts: str | None = None, to_ts: str | None = None) -> list[BarcaHistoryRow]: ...
    def fetch_totals(self, from_ts: str | None = None, to_ts: str | None = None) -> list[TotalHistoryRow]: ...

    def insert_wallet_allocation(self, entry: LedgerEntry) -> int: ...
    def insert_wallet_allocations(self, entries: Iterable[LedgerEntry], created_at: str | None = None) -> int: ...
    def fetch_current_wallet_allocations(self) -> list[LedgerEntry]: ...
    def fetch_wallet_allocation_history(self, symbol: str) -> list[LedgerEntry]: ...

    def persist_allocation_record(self, rec: AllocationRecord) -> int: ...


_WALLET_INSERT = """
INSERT INTO wallet_allocations (
  symbol, group_name, barca, target_percent, current_quantity, last_price, notes, created_at
) VALUES (?,?,?,?,?,?,?,?)
"""


def _wallet_params(entry: LedgerEntry, created_at: str):
    return (
        entry.symbol,
        entry.group_name,
        entry.barca,
        entry.target_percent,
        entry.current_quantity,
        entry.last_price,
        entry.notes,
        created_at,
    )


def _range_clause(from_ts: str | None, to_ts: str | None):
    # stored timestamps are to_utc_iso output, so bounds in the same form compare as strings
    clauses = []
    params = []
    if from_ts is not None:
        clauses.append("timestamp >= ?")
        params.append(to_utc_iso(from_ts))
    if to_ts is not None:
        clauses.append("timestamp <= ?")
        params.append(to_utc_iso(to_ts))
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class SqliteRepo:
    """HistoryRepo on a SQLite file.

    A fresh connection is opened per operation so one instance can be shared
    by concurrent request threads; WAL mode lets readers run alongside the
    snapshot writes.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _conn(self) -> sqlite3.Connection:
        conn = get_conn(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def migrate(self):
        with closing(self._conn()) as conn:
            migrate(conn)

    def stats(self) -> dict:
        with closing(self._conn()) as conn:
            wallet_rows = conn.execute("SELECT COUNT(*) FROM wallet_allocations").fetchone()[0]
            last = conn.execute("SELECT MAX(timestamp) FROM history_totals").fetchone()[0]
        return {"wallet_allocations": wallet_rows, "last_snapshot": last}

    # snapshots

    def insert_asset_snapshot(self, snap: AssetSnapshot) -> bool:
        with closing(self._conn()) as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO history_assets (
                  timestamp, symbol, group_name, barca, price, current_quantity, value,
                  target_percent, current_percent, market_cap, fdv, volume_24h,
                  percent_change_24h, percent_change_7d, extra
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    to_utc_iso(snap.timestamp), snap.symbol, snap.group_name, snap.barca, snap.price,
                    snap.current_quantity, snap.value, snap.target_percent, snap.current_percent,
                    snap.market_cap, snap.fdv, snap.volume_24h, snap.percent_change_24h,
                    snap.percent_change_7d, dumps_or_none(snap.extra),
                ),
            )
            return cur.rowcount > 0

    def insert_group_snapshot(self, snap: GroupSnapshot) -> bool:
        with closing(self._conn()) as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO history_groups (timestamp, group_name, value, current_percent, target_percent, extra) VALUES (?,?,?,?,?,?)",
                (to_utc_iso(snap.timestamp), snap.group_name, snap.value, snap.current_percent, snap.target_percent, dumps_or_none(snap.extra)),
            )
            return cur.rowcount > 0

    def insert_barca_snapshot(self, snap: BarcaSnapshot) -> bool:
        with closing(self._conn()) as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO history_barca (timestamp, barca, value, current_percent, target_percent, extra) VALUES (?,?,?,?,?,?)",
                (to_utc_iso(snap.timestamp), snap.barca, snap.value, snap.current_percent, snap.target_percent, dumps_or_none(snap.extra)),
            )
            return cur.rowcount > 0

    def insert_total_snapshot(self, snap: TotalSnapshot) -> bool:
        with closing(self._conn()) as conn:
            cur = conn.execute(
                "INSERT OR REPLACE INTO history_totals (timestamp, total_value, extra) VALUES (?,?,?)",
                (to_utc_iso(snap.timestamp), snap.total_value, dumps_or_none(snap.extra)),
            )
            return cur.rowcount > 0

    # history

    def _select(self, sql: str, params) -> list[sqlite3.Row]:
        with closing(self._conn()) as conn:
            return conn.execute(sql, params).fetchall()

    def fetch_assets(self, from_ts: str | None = None, to_ts: str | None = None) -> list[AssetHistoryRow]:
        where, params = _range_clause(from_ts, to_ts)
        rows = self._select(
            "SELECT timestamp, symbol, group_name, barca, price, current_quantity, value, "
            "target_percent, current_percent, deviation_percent, value_deviation "
            f"FROM asset_variance_history{where} "
            "ORDER BY timestamp ASC, symbol ASC, group_name ASC, barca ASC",
            params,
        )
        return [AssetHistoryRow(**dict(row)) for row in rows]

    def fetch_groups(self, from_ts: str | None = None, to_ts: str | None = None) -> list[GroupHistoryRow]:
        where, params = _range_clause(from_ts, to_ts)
        rows = self._select(
            "SELECT timestamp, group_name, value, current_percent, target_percent, deviation_percent "
            f"FROM group_variance_history{where} ORDER BY timestamp ASC, group_name ASC",
            params,
        )
        return [GroupHistoryRow(**dict(row)) for row in rows]

    def fetch_barca(self, from_ts: str | None = None, to_ts: str | None = None) -> list[BarcaHistoryRow]:
        where, params = _range_clause(from_ts, to_ts)
        rows = self._select(
            "SELECT timestamp, barca, value, current_percent, target_percent, deviation_percent "
            f"FROM barca_variance_history{where} ORDER BY timestamp ASC, barca ASC",
            params,
        )
        return [BarcaHistoryRow(**dict(row)) for row in rows]

    def fetch_totals(self, from_ts: str | None = None, to_ts: str | None = None) -> list[TotalHistoryRow]:
        where, params = _range_clause(from_ts, to_ts)
        rows = self._select(
            f"SELECT timestamp, total_value, extra, created_at FROM history_totals{where} ORDER BY timestamp ASC",
            params,
        )
        out = []
        for row in rows:
            data = dict(row)
            data["extra"] = json.loads(data["extra"]) if data["extra"] else None
            out.append(TotalHistoryRow(**data))
        return out

    # wallet ledger

    def insert_wallet_allocation(self, entry: LedgerEntry) -> int:
        with closing(self._conn()) as conn:
            cur = conn.execute(_WALLET_INSERT, _wallet_params(entry, entry.created_at or now_utc_iso()))
            return cur.lastrowid

    def insert_wallet_allocations(self, entries: Iterable[LedgerEntry], created_at: str | None = None) -> int:
        """Insert a batch atomically; every row shares one created_at."""
        created_at = created_at or now_utc_iso()
        params = [_wallet_params(entry, created_at) for entry in entries]
        with closing(self._conn()) as conn:
            conn.execute("BEGIN")
            try:
                conn.executemany(_WALLET_INSERT, params)
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        return len(params)

    def fetch_current_wallet_allocations(self) -> list[LedgerEntry]:
        rows = self._select(
            "SELECT * FROM wallet_allocations_current ORDER BY symbol, group_name, barca",
            (),
        )
        return [LedgerEntry(**dict(row)) for row in rows]

    def fetch_wallet_allocation_history(self, symbol: str) -> list[LedgerEntry]:
        rows = self._select(
            "SELECT * FROM wallet_allocations WHERE symbol = ? ORDER BY created_at DESC, id DESC",
            (symbol,),
        )
        return [LedgerEntry(**dict(row)) for row in rows]

    # audit

    def persist_allocation_record(self, rec: AllocationRecord) -> int:
        with closing(self._conn()) as conn:
            cur = conn.execute(
                "INSERT INTO allocations (computed_at, payload) VALUES (?, ?)",
                (rec.computed_at, json.dumps(rec.payload)),
            )
            return cur.lastrowid
