from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from ..errors import ProviderResponseError, ProviderUnavailableError
from ..models import PriceQuote
from ..utils import retry_call

log = structlog.get_logger()

LISTINGS_PATH = "/v1/cryptocurrency/listings/latest"


@runtime_checkable
class PriceProvider(Protocol):
    def fetch_latest(self, api_key: str) -> List[PriceQuote]: ...


# CoinMarketCap wire format (only the fields we read)

class _UsdQuote(BaseModel):
    price: Optional[float] = None
    volume_24h: Optional[float] = None
    percent_change_24h: Optional[float] = None
    percent_change_7d: Optional[float] = None
    market_cap: Optional[float] = None
    fully_diluted_market_cap: Optional[float] = None


class _QuoteBlock(BaseModel):
    usd: _UsdQuote = Field(alias="USD")


class _Listing(BaseModel):
    symbol: str
    quote: _QuoteBlock


class _ListingsResponse(BaseModel):
    data: List[_Listing]


def parse_listings(payload) -> List[PriceQuote]:
    try:
        parsed = _ListingsResponse.model_validate(payload)
    except ValidationError as exc:
        raise ProviderResponseError(f"Failed to parse CoinMarketCap response: {exc.error_count()} invalid fields") from exc
    quotes = []
    skipped = 0
    for listing in parsed.data:
        usd = listing.quote.usd
        if usd.price is None:
            skipped += 1
            continue
        quotes.append(
            PriceQuote(
                symbol=listing.symbol,
                price=usd.price,
                volume_24h=usd.volume_24h,
                percent_change_24h=usd.percent_change_24h,
                percent_change_7d=usd.percent_change_7d,
                market_cap=usd.market_cap,
                fdv=usd.fully_diluted_market_cap,
            )
        )
    if skipped:
        log.info("cmc_listings_without_price", skipped=skipped)
    return quotes


class CoinMarketCapProvider:
    def __init__(
        self,
        base_url: str = "https://pro-api.coinmarketcap.com",
        limit: int = 1000,
        timeout: float = 15.0,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_backoff_seconds = retry_backoff_seconds
        self.transport = transport

    @classmethod
    def from_settings(cls, settings) -> "CoinMarketCapProvider":
        return cls(
            base_url=settings.cmc_base_url,
            limit=settings.cmc_listing_limit,
            timeout=settings.http_timeout_seconds,
            retry_attempts=settings.http_retry_attempts,
            retry_backoff_seconds=settings.http_retry_backoff_seconds,
        )

    def fetch_latest(self, api_key: str) -> List[PriceQuote]:
        headers = {"X-CMC_PRO_API_KEY": api_key, "Accept": "application/json"}
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            def _call():
                return client.get(LISTINGS_PATH, params={"limit": self.limit}, headers=headers)

            try:
                resp = retry_call(
                    _call,
                    attempts=self.retry_attempts,
                    base_delay=self.retry_backoff_seconds,
                    retry_on=(httpx.TransportError,),
                )
            except httpx.TransportError as exc:
                log.warning("cmc_request_failed", err=str(exc))
                raise ProviderUnavailableError(f"Failed to contact CoinMarketCap: {exc}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            log.warning("cmc_status_error", status=resp.status_code, body=resp.text[:500])
            raise ProviderUnavailableError(f"CoinMarketCap returned an error status: {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ProviderResponseError(f"Failed to parse CoinMarketCap response: {exc}") from exc
        quotes = parse_listings(payload)
        log.info("cmc_quotes_fetched", count=len(quotes))
        return quotes


class StaticPriceProvider:
    """Serves a fixed list of quotes; used in tests and offline runs."""

    def __init__(self, quotes: List[PriceQuote], error: Exception | None = None):
        self.quotes = list(quotes)
        self.error = error
        self.calls = 0

    def fetch_latest(self, api_key: str) -> List[PriceQuote]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.quotes)
