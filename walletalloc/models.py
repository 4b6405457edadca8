from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    return value


class LedgerEntry(BaseModel):
    """One row of the append-only wallet allocation ledger."""

    id: int | None = None
    symbol: str = Field(min_length=1)
    group_name: str | None = None
    barca: str | None = None
    target_percent: float | None = None
    current_quantity: float | None = None
    last_price: float | None = None
    notes: str | None = None
    created_at: str | None = None

    @field_validator("symbol", mode="before")
    @classmethod
    def _strip_symbol(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator(
        "group_name", "barca", "target_percent", "current_quantity", "last_price", "notes",
        mode="before",
    )
    @classmethod
    def _empty_cells(cls, value):
        return _blank_to_none(value)


class PriceQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    volume_24h: float | None = None
    percent_change_24h: float | None = None
    percent_change_7d: float | None = None
    market_cap: float | None = None
    fdv: float | None = None


class AggregatedAsset(BaseModel):
    """Running sums for one (symbol, group, barca) key."""

    price: float
    value: float = 0.0
    quantity: float = 0.0
    target_percent: float = 0.0
    quote: PriceQuote | None = None


class PerAsset(BaseModel):
    symbol: str
    group: str
    barca: str
    price: float
    current_quantity: float
    value: float
    target_percent: float
    current_percent: float
    deviation: float
    volume_24h: float | None = None
    percent_change_24h: float | None = None
    percent_change_7d: float | None = None
    market_cap: float | None = None
    fdv: float | None = None


class PerGroup(BaseModel):
    group: str
    value: float
    target_percent: float
    current_percent: float
    deviation: float


class PerBarca(BaseModel):
    barca: str
    value: float
    target_percent: float
    current_percent: float
    deviation: float


class PerBarcaActual(BaseModel):
    barca: str
    value: float
    current_percent: float


class AllocationReport(BaseModel):
    computed_at: str | None = None
    market: str | None = None
    total_value: float = 0.0
    per_asset: list[PerAsset] = Field(default_factory=list)
    per_group: list[PerGroup] = Field(default_factory=list)
    per_barca: list[PerBarca] = Field(default_factory=list)
    per_barca_actual: list[PerBarcaActual] = Field(default_factory=list)
    unpriced_symbols: list[str] = Field(default_factory=list)


class AllocationRecord(BaseModel):
    id: int | None = None
    computed_at: str
    payload: dict
    created_at: str | None = None


# Snapshot rows as written to the history tables

class AssetSnapshot(BaseModel):
    timestamp: str
    symbol: str
    group_name: str = ""
    barca: str = ""
    price: float | None = None
    current_quantity: float | None = None
    value: float | None = None
    target_percent: float | None = None
    current_percent: float | None = None
    market_cap: float | None = None
    fdv: float | None = None
    volume_24h: float | None = None
    percent_change_24h: float | None = None
    percent_change_7d: float | None = None
    extra: dict | None = None


class GroupSnapshot(BaseModel):
    timestamp: str
    group_name: str
    value: float | None = None
    current_percent: float | None = None
    target_percent: float | None = None
    extra: dict | None = None


class BarcaSnapshot(BaseModel):
    timestamp: str
    barca: str
    value: float | None = None
    current_percent: float | None = None
    target_percent: float | None = None
    extra: dict | None = None


class TotalSnapshot(BaseModel):
    timestamp: str
    total_value: float | None = None
    extra: dict | None = None


# Read models for the history endpoint

class AssetHistoryRow(BaseModel):
    timestamp: str
    symbol: str
    group_name: str
    barca: str
    price: float | None = None
    current_quantity: float | None = None
    value: float | None = None
    target_percent: float | None = None
    current_percent: float | None = None
    deviation_percent: float | None = None
    value_deviation: float | None = None


class GroupHistoryRow(BaseModel):
    timestamp: str
    group_name: str
    value: float | None = None
    current_percent: float | None = None
    target_percent: float | None = None
    deviation_percent: float | None = None


class BarcaHistoryRow(BaseModel):
    timestamp: str
    barca: str
    value: float | None = None
    current_percent: float | None = None
    target_percent: float | None = None
    deviation_percent: float | None = None


class TotalHistoryRow(BaseModel):
    timestamp: str
    total_value: float | None = None
    extra: dict | None = None
    created_at: str | None = None
