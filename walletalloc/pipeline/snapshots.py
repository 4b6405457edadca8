from __future__ import annotations

import structlog
from pydantic import BaseModel, Field

from ..models import AllocationReport, AssetSnapshot, BarcaSnapshot, GroupSnapshot, TotalSnapshot

log = structlog.get_logger()

LEVELS = ("assets", "groups", "barca", "totals")


def _zero_counts():
    return {level: 0 for level in LEVELS}


class SnapshotWriteResult(BaseModel):
    written: dict[str, int] = Field(default_factory=_zero_counts)
    ignored: dict[str, int] = Field(default_factory=_zero_counts)
    failed: dict[str, int] = Field(default_factory=_zero_counts)

    @property
    def failures(self) -> int:
        return sum(self.failed.values())


def _write(result: SnapshotWriteResult, level: str, insert, snap, **key):
    try:
        wrote = insert(snap)
    except Exception as exc:
        result.failed[level] += 1
        log.error("snapshot_insert_failed", level=level, timestamp=snap.timestamp, err=str(exc), **key)
        return
    if wrote:
        result.written[level] += 1
    else:
        result.ignored[level] += 1


def persist_snapshots(repo, timestamp: str, report: AllocationReport) -> SnapshotWriteResult:
    """Record one report as history rows stamped with `timestamp`.

    Each row is its own insert: a failing row is logged and skipped, the rest
    of the batch still lands. Re-running with the same timestamp leaves the
    asset/group/barca rows untouched and replaces the totals row.
    """
    result = SnapshotWriteResult()

    for row in report.per_asset:
        snap = AssetSnapshot(
            timestamp=timestamp,
            symbol=row.symbol,
            group_name=row.group,
            barca=row.barca,
            price=row.price,
            current_quantity=row.current_quantity,
            value=row.value,
            target_percent=row.target_percent,
            current_percent=row.current_percent,
            market_cap=row.market_cap,
            fdv=row.fdv,
            volume_24h=row.volume_24h,
            percent_change_24h=row.percent_change_24h,
            percent_change_7d=row.percent_change_7d,
        )
        _write(result, "assets", repo.insert_asset_snapshot, snap,
               symbol=row.symbol, group=row.group, barca=row.barca)

    for row in report.per_group:
        snap = GroupSnapshot(
            timestamp=timestamp,
            group_name=row.group,
            value=row.value,
            current_percent=row.current_percent,
            target_percent=row.target_percent,
        )
        _write(result, "groups", repo.insert_group_snapshot, snap, group=row.group)

    for row in report.per_barca:
        snap = BarcaSnapshot(
            timestamp=timestamp,
            barca=row.barca,
            value=row.value,
            current_percent=row.current_percent,
            target_percent=row.target_percent,
        )
        _write(result, "barca", repo.insert_barca_snapshot, snap, barca=row.barca)

    total = TotalSnapshot(
        timestamp=timestamp,
        total_value=report.total_value,
        extra={
            "market": report.market,
            "assets": len(report.per_asset),
            "unpriced_symbols": report.unpriced_symbols,
        },
    )
    _write(result, "totals", repo.insert_total_snapshot, total)

    log.info(
        "snapshots_persisted",
        timestamp=timestamp,
        written=result.written,
        ignored=result.ignored,
        failed=result.failed,
    )
    return result
