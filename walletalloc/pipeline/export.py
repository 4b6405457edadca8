from __future__ import annotations

import pandas as pd

from .history import fetch_history, normalize_level

COLUMNS = {
    "assets": [
        "timestamp", "symbol", "group_name", "barca", "current_quantity", "price", "value",
        "target_percent", "current_percent", "deviation_percent", "value_deviation",
    ],
    "groups": ["timestamp", "group_name", "value", "current_percent", "target_percent", "deviation_percent"],
    "barca": ["timestamp", "barca", "value", "current_percent", "target_percent", "deviation_percent"],
    "totals": ["timestamp", "total_value"],
}


def history_frame(repo, level: str, from_ts: str | None = None, to_ts: str | None = None) -> pd.DataFrame:
    level = normalize_level(level)
    rows = fetch_history(repo, level, from_ts, to_ts)
    records = [row.model_dump() for row in rows]
    return pd.DataFrame.from_records(records, columns=COLUMNS[level])


def export_history_csv(repo, level: str, path: str | None = None, from_ts: str | None = None, to_ts: str | None = None):
    """Write a history level as CSV to `path`, or return the CSV text when no path is given."""
    df = history_frame(repo, level, from_ts, to_ts)
    if path is None:
        return df.to_csv(index=False)
    df.to_csv(path, index=False)
    return len(df)
