"""Tests for upstream market data providers."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest
import respx

from marketcache.providers import EodhdProvider, PolygonProvider

BASE_URL = "https://eodhd.com/api"


@pytest.fixture
def mock_rest_client():
    with patch("marketcache.providers.RESTClient") as mock_client_class:
        yield mock_client_class.return_value


class TestPolygonProvider:
    """Tests for PolygonProvider."""

    def test_client_created_with_timeouts(self):
        """✅ Test the REST client gets the API key and timeouts."""
        with patch("marketcache.providers.RESTClient") as mock_client_class:
            PolygonProvider(api_key="test-key", timeout=3.0)

        mock_client_class.assert_called_once_with(
            api_key="test-key", connect_timeout=3.0, read_timeout=3.0
        )

    def test_fetch_quote_combines_snapshot_and_details(self, mock_rest_client):
        """✅ Test the quote payload merges snapshot prices with ticker details."""
        mock_rest_client.get_snapshot_ticker.return_value = SimpleNamespace(
            ticker="AAPL",
            day=SimpleNamespace(close=191.0, volume=48_000_000),
            prev_day=SimpleNamespace(close=189.0),
            last_trade=SimpleNamespace(price=191.2),
            todays_change=2.0,
            todays_change_percent=1.058,
        )
        mock_rest_client.get_ticker_details.return_value = SimpleNamespace(
            name="Apple Inc.", market_cap=2.95e12
        )

        raw = PolygonProvider(api_key="k").fetch_quote("AAPL")

        mock_rest_client.get_snapshot_ticker.assert_called_once_with("stocks", "AAPL")
        assert raw == {
            "symbol": "AAPL",
            "price": 191.0,
            "change": 2.0,
            "change_percent": 1.058,
            "previous_close": 189.0,
            "volume": 48_000_000,
            "name": "Apple Inc.",
            "market_cap": 2.95e12,
        }

    def test_fetch_quote_falls_back_to_last_trade_price(self, mock_rest_client):
        """✅ Test the last trade price is used before the session bar exists."""
        mock_rest_client.get_snapshot_ticker.return_value = SimpleNamespace(
            ticker="AAPL",
            day=SimpleNamespace(close=0, volume=0),
            prev_day=None,
            last_trade=SimpleNamespace(price=190.5),
            todays_change=None,
            todays_change_percent=None,
        )
        mock_rest_client.get_ticker_details.side_effect = Exception("404")

        raw = PolygonProvider(api_key="k").fetch_quote("AAPL")

        assert raw["price"] == 190.5
        assert raw["previous_close"] is None
        assert "name" not in raw

    def test_fetch_quote_propagates_errors(self, mock_rest_client):
        """❌ Test snapshot failures are raised for the caller to handle."""
        mock_rest_client.get_snapshot_ticker.side_effect = Exception("API Error")

        with pytest.raises(Exception, match="API Error"):
            PolygonProvider(api_key="k").fetch_quote("AAPL")

    def test_fetch_historical(self, mock_rest_client):
        """✅ Test daily aggregates are requested and flattened."""
        mock_rest_client.list_aggs.return_value = [
            SimpleNamespace(timestamp=1704153600000, open=1, high=2, low=0.5, close=1.5, volume=100),
        ]

        records = PolygonProvider(api_key="k").fetch_historical(
            "AAPL", date(2024, 1, 1), date(2024, 1, 31)
        )

        mock_rest_client.list_aggs.assert_called_once_with(
            "AAPL",
            1,
            "day",
            "2024-01-01",
            "2024-01-31",
            adjusted=True,
            sort="asc",
            limit=50000,
        )
        assert records == [
            {"timestamp": 1704153600000, "open": 1, "high": 2, "low": 0.5, "close": 1.5, "volume": 100}
        ]

    def test_search_symbols_respects_limit(self, mock_rest_client):
        """✅ Test the lazy ticker iterator is cut at the limit."""
        mock_rest_client.list_tickers.return_value = iter(
            SimpleNamespace(ticker=f"T{i}", name=f"Ticker {i}") for i in range(50)
        )

        results = PolygonProvider(api_key="k").search_symbols("t", 3)

        assert results == [
            {"symbol": "T0", "name": "Ticker 0"},
            {"symbol": "T1", "name": "Ticker 1"},
            {"symbol": "T2", "name": "Ticker 2"},
        ]


class TestEodhdProvider:
    """Tests for EodhdProvider."""

    @respx.mock
    def test_fetch_quote(self):
        """✅ Test the real-time endpoint is called with the token."""
        route = respx.get(f"{BASE_URL}/real-time/RELIANCE.NSE").mock(
            return_value=httpx.Response(200, json={"code": "RELIANCE.NSE", "close": 2950.5})
        )
        provider = EodhdProvider(api_key="demo")

        raw = provider.fetch_quote("RELIANCE.NSE")

        assert raw == {"code": "RELIANCE.NSE", "close": 2950.5}
        params = route.calls.last.request.url.params
        assert params["api_token"] == "demo"
        assert params["fmt"] == "json"
        provider.close()

    @respx.mock
    def test_fetch_quote_http_error_raises(self):
        """❌ Test non-2xx responses raise."""
        respx.get(f"{BASE_URL}/real-time/RELIANCE.NSE").mock(
            return_value=httpx.Response(401, json={"error": "Unauthenticated"})
        )

        with pytest.raises(httpx.HTTPStatusError):
            EodhdProvider(api_key="bad").fetch_quote("RELIANCE.NSE")

    @respx.mock
    def test_fetch_quote_unexpected_payload(self):
        """❌ Test a non-object quote payload is rejected."""
        respx.get(f"{BASE_URL}/real-time/RELIANCE.NSE").mock(
            return_value=httpx.Response(200, json=[1, 2, 3])
        )

        with pytest.raises(ValueError, match="Unexpected EODHD quote payload"):
            EodhdProvider(api_key="demo").fetch_quote("RELIANCE.NSE")

    @respx.mock
    def test_fetch_historical(self):
        """✅ Test the end-of-day endpoint gets the date range in ascending order."""
        rows = [{"date": "2024-01-02", "close": 10.0}, {"date": "2024-01-03", "close": 11.0}]
        route = respx.get(f"{BASE_URL}/eod/TCS.NSE").mock(
            return_value=httpx.Response(200, json=rows)
        )

        records = EodhdProvider(api_key="demo").fetch_historical(
            "TCS.NSE", date(2024, 1, 1), date(2024, 1, 31)
        )

        assert records == rows
        params = route.calls.last.request.url.params
        assert params["from"] == "2024-01-01"
        assert params["to"] == "2024-01-31"
        assert params["period"] == "d"
        assert params["order"] == "a"

    @respx.mock
    def test_search_symbols(self):
        """✅ Test search results become exchange-qualified symbols."""
        respx.get(f"{BASE_URL}/search/infosys").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {"Code": "INFY", "Exchange": "NSE", "Name": "Infosys Limited"},
                    {"Code": "", "Exchange": "NSE", "Name": "Broken"},
                    {"Code": "INFY", "Exchange": "US", "Name": None},
                ],
            )
        )

        results = EodhdProvider(api_key="demo").search_symbols("infosys", 10)

        assert results == [
            {"symbol": "INFY.NSE", "name": "Infosys Limited"},
            {"symbol": "INFY.US", "name": "INFY"},
        ]

    def test_close_leaves_shared_client_open(self):
        """✅ Test an injected client is not closed by the provider."""
        client = httpx.Client()
        provider = EodhdProvider(api_key="demo", http=client)

        provider.close()

        assert not client.is_closed
        client.close()

    def test_close_owned_client(self):
        """✅ Test the provider closes the client it created."""
        provider = EodhdProvider(api_key="demo")

        provider.close()

        assert provider._http.is_closed
