from __future__ import annotations

import time

import structlog

from ..config import Settings
from ..errors import ConfigError
from ..models import AllocationRecord, AllocationReport, LedgerEntry
from ..providers.coinmarketcap import PriceProvider
from ..repository import HistoryRepo
from ..utils import now_utc_iso
from .aggregate import aggregate
from .history import fetch_history
from .ledger import import_wallet_allocations, read_barca_targets
from .prices import build_price_index
from .snapshots import persist_snapshots

log = structlog.get_logger()


class AllocationService:
    """Wires settings, the price provider and the repository together."""

    def __init__(self, settings: Settings, provider: PriceProvider, repo: HistoryRepo):
        self.settings = settings
        self.provider = provider
        self.repo = repo

    def compute_and_record(self) -> AllocationReport:
        api_key = self.settings.api_key
        if not api_key:
            raise ConfigError("Missing required environment variable: API_KEY")
        started = time.monotonic()
        market = self.settings.current_market
        barca_targets = read_barca_targets(self.settings.barca_allocations_path, market)
        quotes = self.provider.fetch_latest(api_key)
        ledger = self.repo.fetch_current_wallet_allocations()

        report = aggregate(ledger, build_price_index(quotes), barca_targets)
        computed_at = now_utc_iso()
        report.computed_at = computed_at
        report.market = market

        try:
            self.repo.persist_allocation_record(
                AllocationRecord(computed_at=computed_at, payload=report.model_dump(mode="json"))
            )
        except Exception as e:
            log.error("allocation_record_failed", computed_at=computed_at, err=str(e))
        result = persist_snapshots(self.repo, computed_at, report)

        log.info(
            "allocations_computed",
            market=market,
            ledger_rows=len(ledger),
            quotes=len(quotes),
            assets=len(report.per_asset),
            total_value=report.total_value,
            snapshot_failures=result.failures,
            elapsed_sec=round(time.monotonic() - started, 3),
        )
        return report

    def history(self, level: str, from_ts: str | None = None, to_ts: str | None = None) -> list:
        return fetch_history(self.repo, level, from_ts, to_ts)

    def import_wallets(self, path: str | None = None) -> int:
        return import_wallet_allocations(self.repo, path or self.settings.wallet_allocations_path)

    def add_wallet_allocation(self, entry: LedgerEntry) -> LedgerEntry:
        entry = entry.model_copy(update={"created_at": entry.created_at or now_utc_iso()})
        row_id = self.repo.insert_wallet_allocation(entry)
        log.info("wallet_allocation_added", id=row_id, symbol=entry.symbol)
        return entry.model_copy(update={"id": row_id})

    def wallet_allocation_history(self, symbol: str) -> list[LedgerEntry]:
        return self.repo.fetch_wallet_allocation_history(symbol)
