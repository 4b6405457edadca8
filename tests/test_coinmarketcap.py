import unittest

import httpx

from walletalloc.errors import ProviderResponseError, ProviderUnavailableError, UpstreamError
from walletalloc.providers.coinmarketcap import CoinMarketCapProvider, parse_listings


def _listing(symbol, price, **usd):
    usd = {"price": price, **usd}
    return {"id": 1, "symbol": symbol, "name": symbol.title(), "quote": {"USD": usd}}


def _provider(handler, attempts=2):
    return CoinMarketCapProvider(
        base_url="https://cmc.test",
        limit=50,
        timeout=1.0,
        retry_attempts=attempts,
        retry_backoff_seconds=0,
        transport=httpx.MockTransport(handler),
    )


class ParseListingsTests(unittest.TestCase):
    def test_maps_usd_quote(self):
        payload = {
            "status": {"error_code": 0},
            "data": [
                _listing(
                    "BTC", 40000.0, volume_24h=1e9, percent_change_24h=1.5, percent_change_7d=-2.0,
                    market_cap=8e11, fully_diluted_market_cap=8.4e11,
                )
            ],
        }
        quotes = parse_listings(payload)
        self.assertEqual(len(quotes), 1)
        q = quotes[0]
        self.assertEqual(q.symbol, "BTC")
        self.assertEqual(q.price, 40000.0)
        self.assertEqual(q.percent_change_7d, -2.0)
        self.assertEqual(q.fdv, 8.4e11)

    def test_null_price_is_skipped(self):
        quotes = parse_listings({"data": [_listing("BTC", 1.0), _listing("NEW", None)]})
        self.assertEqual([q.symbol for q in quotes], ["BTC"])

    def test_missing_quote_block(self):
        with self.assertRaises(ProviderResponseError):
            parse_listings({"data": [{"symbol": "BTC"}]})


class CoinMarketCapProviderTests(unittest.TestCase):
    def test_fetch_latest(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [_listing("BTC", 40000.0), _listing("ETH", 2000.0)]})

        quotes = _provider(handler).fetch_latest("secret")
        self.assertEqual([q.symbol for q in quotes], ["BTC", "ETH"])
        request = seen[0]
        self.assertEqual(request.url.path, "/v1/cryptocurrency/listings/latest")
        self.assertEqual(request.url.params["limit"], "50")
        self.assertEqual(request.headers["X-CMC_PRO_API_KEY"], "secret")

    def test_error_status(self):
        provider = _provider(lambda request: httpx.Response(500, text="boom"))
        with self.assertRaises(ProviderUnavailableError):
            provider.fetch_latest("secret")

    def test_unauthorized_is_upstream_error(self):
        provider = _provider(lambda request: httpx.Response(401, json={"status": {"error_code": 1001}}))
        with self.assertRaises(UpstreamError):
            provider.fetch_latest("bad")

    def test_invalid_json(self):
        provider = _provider(lambda request: httpx.Response(200, text="<html>not json</html>"))
        with self.assertRaises(ProviderResponseError):
            provider.fetch_latest("secret")

    def test_transport_error_is_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(ProviderUnavailableError):
            _provider(handler, attempts=3).fetch_latest("secret")
        self.assertEqual(len(calls), 3)

    def test_recovers_after_transient_failure(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"data": [_listing("BTC", 1.0)]})

        quotes = _provider(handler).fetch_latest("secret")
        self.assertEqual(len(quotes), 1)
        self.assertEqual(len(calls), 2)


if __name__ == "__main__":
    unittest.main()
