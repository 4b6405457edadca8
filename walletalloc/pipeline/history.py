from __future__ import annotations

from ..utils import to_utc_iso

LEVEL_ALIASES = {
    "assets": "assets",
    "groups": "groups",
    "barca": "barca",
    "bucket": "barca",
    "buckets": "barca",
    "totals": "totals",
}


def normalize_level(level: str) -> str:
    key = (level or "").strip().lower()
    if key not in LEVEL_ALIASES:
        raise ValueError("level must be assets|groups|barca|totals")
    return LEVEL_ALIASES[key]


def _bound(name: str, value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    try:
        return to_utc_iso(value)
    except ValueError:
        raise ValueError(f"{name} must be an RFC3339 timestamp, got {value!r}") from None


def fetch_history(repo, level: str, from_ts: str | None = None, to_ts: str | None = None) -> list:
    """Rows of one history level with from_ts <= timestamp <= to_ts.

    Bounds are RFC3339 instants in any offset (Z accepted); either may be
    omitted. Rows come back ordered by timestamp, then by symbol / group / barca.
    """
    level = normalize_level(level)
    from_ts = _bound("from", from_ts)
    to_ts = _bound("to", to_ts)
    if from_ts is not None and to_ts is not None and from_ts > to_ts:
        raise ValueError("from must be <= to")
    if level == "assets":
        return repo.fetch_assets(from_ts, to_ts)
    if level == "groups":
        return repo.fetch_groups(from_ts, to_ts)
    if level == "barca":
        return repo.fetch_barca(from_ts, to_ts)
    return repo.fetch_totals(from_ts, to_ts)
