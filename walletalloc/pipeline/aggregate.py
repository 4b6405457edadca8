from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

import structlog

from ..models import AggregatedAsset, AllocationReport, LedgerEntry, PerAsset, PerGroup, PriceQuote
from .reconcile import percent_of_total, reconcile_barcas

log = structlog.get_logger()

AssetKey = Tuple[str, str, str]  # (symbol, group, barca)
AggregatedAssets = Dict[AssetKey, AggregatedAsset]


def aggregate_assets(
    ledger: Iterable[LedgerEntry],
    price_index: Dict[str, PriceQuote],
) -> Tuple[AggregatedAssets, float, List[str]]:
    """Price ledger rows and sum them per (symbol, group, barca).

    Rows whose symbol has no quote are left out of every sum. Returns the
    aggregates, the wallet total and the sorted list of unpriced symbols.
    """
    assets: AggregatedAssets = {}
    total_value = 0.0
    unpriced = set()
    for entry in ledger:
        quote = price_index.get(entry.symbol)
        if quote is None:
            unpriced.add(entry.symbol)
            continue
        qty = entry.current_quantity or 0.0
        value = qty * quote.price
        key = (entry.symbol, entry.group_name or "", entry.barca or "")
        agg = assets.get(key)
        if agg is None:
            agg = assets[key] = AggregatedAsset(price=quote.price, quote=quote)
        agg.value += value
        agg.quantity += qty
        agg.target_percent += entry.target_percent or 0.0
        agg.price = quote.price
        agg.quote = quote
        total_value += value
    return assets, total_value, sorted(unpriced)


def build_per_asset(assets: AggregatedAssets, total_value: float) -> List[PerAsset]:
    rows = []
    for (symbol, group, barca), agg in sorted(assets.items()):
        current_percent = percent_of_total(agg.value, total_value)
        quote = agg.quote
        rows.append(
            PerAsset(
                symbol=symbol,
                group=group,
                barca=barca,
                price=agg.price,
                current_quantity=agg.quantity,
                value=agg.value,
                target_percent=agg.target_percent,
                current_percent=current_percent,
                deviation=current_percent - agg.target_percent,
                volume_24h=quote.volume_24h if quote else None,
                percent_change_24h=quote.percent_change_24h if quote else None,
                percent_change_7d=quote.percent_change_7d if quote else None,
                market_cap=quote.market_cap if quote else None,
                fdv=quote.fdv if quote else None,
            )
        )
    return rows


def build_per_group(assets: AggregatedAssets, total_value: float) -> List[PerGroup]:
    values: Dict[str, float] = defaultdict(float)
    targets: Dict[str, float] = defaultdict(float)
    for (_, group, _), agg in assets.items():
        values[group] += agg.value
        targets[group] += agg.target_percent
    rows = []
    for group in sorted(values):
        current_percent = percent_of_total(values[group], total_value)
        rows.append(
            PerGroup(
                group=group,
                value=values[group],
                target_percent=targets[group],
                current_percent=current_percent,
                deviation=current_percent - targets[group],
            )
        )
    return rows


def actual_values_by_barca(assets: AggregatedAssets) -> Dict[str, float]:
    values: Dict[str, float] = defaultdict(float)
    for (_, _, barca), agg in assets.items():
        values[barca] += agg.value
    return dict(values)


def aggregate(
    ledger: Iterable[LedgerEntry],
    price_index: Dict[str, PriceQuote],
    barca_targets: Dict[str, float],
) -> AllocationReport:
    """Compute the asset, group and barca deviation report for one ledger."""
    assets, total_value, unpriced = aggregate_assets(ledger, price_index)
    if unpriced:
        log.info("allocation_symbols_without_quote", symbols=unpriced, count=len(unpriced))
    per_barca, per_barca_actual = reconcile_barcas(
        actual_values_by_barca(assets), barca_targets, total_value
    )
    return AllocationReport(
        total_value=total_value,
        per_asset=build_per_asset(assets, total_value),
        per_group=build_per_group(assets, total_value),
        per_barca=per_barca,
        per_barca_actual=per_barca_actual,
        unpriced_symbols=unpriced,
    )
