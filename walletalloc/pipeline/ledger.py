from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List

import structlog
from pydantic import ValidationError

from ..errors import ConfigError, LedgerImportError
from ..models import LedgerEntry
from ..utils import now_utc_iso

log = structlog.get_logger()

WALLET_COLUMNS = ("symbol", "group", "barca", "target_percent", "current_quantity", "last_price", "notes")
BARCA_COLUMNS = ("market", "group", "target_percent")


def _read_rows(path: str):
    """Yield (line_number, header, row) with whitespace trimmed off every cell."""
    with open(path, newline="", encoding="utf-8-sig") as handle:
        reader = csv.reader(handle)
        header = None
        for row in reader:
            cells = [cell.strip() for cell in row]
            if not any(cells):
                continue
            if header is None:
                header = [cell.lower() for cell in cells]
                yield reader.line_num, header, None
                continue
            yield reader.line_num, header, cells


def _as_record(header: List[str], cells: List[str]) -> dict:
    record = {}
    for idx, name in enumerate(header):
        record[name] = cells[idx] if idx < len(cells) else ""
    return record


def read_wallet_allocations(path: str) -> List[LedgerEntry]:
    """Parse a wallet ledger CSV; the first bad row aborts the whole file."""
    entries = []
    try:
        rows = list(_read_rows(path))
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise LedgerImportError(f"cannot read file: {exc}", path=path) from exc
    if not rows:
        raise LedgerImportError("header row required", path=path)
    header = rows[0][1]
    if "symbol" not in header:
        raise LedgerImportError(f"missing 'symbol' column, expected {', '.join(WALLET_COLUMNS)}", path=path, line=rows[0][0])
    for line, _, cells in rows[1:]:
        if len(cells) > len(header) and any(cells[len(header):]):
            raise LedgerImportError(f"{len(cells)} cells for {len(header)} columns", path=path, line=line)
        record = _as_record(header, cells)
        try:
            entry = LedgerEntry(
                symbol=record.get("symbol"),
                group_name=record.get("group"),
                barca=record.get("barca"),
                target_percent=record.get("target_percent"),
                current_quantity=record.get("current_quantity"),
                last_price=record.get("last_price"),
                notes=record.get("notes") or record.get("comments"),
            )
        except ValidationError as exc:
            fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
            raise LedgerImportError(f"invalid value for {fields}", path=path, line=line) from exc
        entries.append(entry)
    return entries


def import_wallet_allocations(repo, path: str) -> int:
    """Append every row of a ledger CSV; nothing is written if any row is bad."""
    entries = read_wallet_allocations(path)
    created_at = now_utc_iso()
    count = repo.insert_wallet_allocations(entries, created_at=created_at)
    log.info("wallet_allocations_imported", path=str(path), count=count, created_at=created_at)
    return count


def read_barca_targets(path: str, current_market: str) -> Dict[str, float]:
    """Target percent per barca for the active market context."""
    if not Path(path).exists():
        raise ConfigError(f"BARCA allocations file not found: {path}")
    targets: Dict[str, float] = {}
    try:
        rows = list(_read_rows(path))
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise ConfigError(f"Failed to open BARCA allocations CSV ({path}): {exc}") from exc
    if not rows:
        raise ConfigError(f"BARCA allocations CSV ({path}) is empty")
    header = rows[0][1]
    missing = [col for col in BARCA_COLUMNS if col not in header]
    if missing:
        raise ConfigError(f"BARCA allocations CSV ({path}) missing columns: {', '.join(missing)}")
    for line, _, cells in rows[1:]:
        record = _as_record(header, cells)
        if record["market"] != current_market:
            continue
        try:
            target = float(record["target_percent"])
        except ValueError as exc:
            raise ConfigError(f"Invalid BARCA allocation entry in {path}:{line}: target_percent={record['target_percent']!r}") from exc
        if not record["group"]:
            raise ConfigError(f"Invalid BARCA allocation entry in {path}:{line}: empty group")
        targets[record["group"]] = target
    if not targets:
        raise ConfigError(f"No BARCA targets found for market '{current_market}'")
    return targets
