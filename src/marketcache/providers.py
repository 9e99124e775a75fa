"""Upstream market data providers.

Providers only fetch: they return raw mappings in whatever shape the vendor
uses and raise on any failure. Normalization, caching, timeouts and fallback
all live in the service layer.
"""

from collections.abc import Mapping, Sequence
from datetime import date
from itertools import islice
from typing import Any, Protocol

import httpx
from polygon import RESTClient

from marketcache.logging import logger

RawRecord = Mapping[str, Any]


class MarketDataProvider(Protocol):
    """
    🎭 Protocol for upstream market data sources.

    Any class with these methods can back a MarketDataService. Methods
    should raise on transport or vendor errors and return None / an empty
    sequence only when the vendor genuinely has no data.

    Example:
        class MyProvider:
            def fetch_quote(self, symbol: str) -> RawRecord | None:
                return {"symbol": symbol, "price": 101.5}
            ...
    """

    def fetch_quote(self, symbol: str) -> RawRecord | None:
        """📥 Fetch the latest quote for a symbol."""
        ...

    def fetch_historical(self, symbol: str, start: date, end: date) -> Sequence[RawRecord]:
        """📥 Fetch daily bars between two dates, inclusive."""
        ...

    def search_symbols(self, query: str, limit: int) -> Sequence[RawRecord]:
        """🔎 Free-text symbol search returning mappings with `symbol` and `name`."""
        ...

    def close(self) -> None:
        """Release any held connections."""
        ...


class PolygonProvider:
    """
    📡 Polygon.io provider backed by the official REST client.

    Quotes combine the ticker snapshot (price, change, volume) with the
    ticker details endpoint (company name, market cap).
    """

    def __init__(self, api_key: str, timeout: float = 10.0) -> None:
        """
        Initialize the provider.

        Args:
            api_key: Polygon.io API key
            timeout: Connect and read timeout for each HTTP request, in seconds
        """
        self.client = RESTClient(api_key=api_key, connect_timeout=timeout, read_timeout=timeout)

    def _details(self, symbol: str) -> dict[str, Any]:
        try:
            details = self.client.get_ticker_details(symbol)
        except Exception as e:
            # Details only enrich the quote, so the snapshot alone is still usable
            logger.info(
                "Ticker details unavailable symbol={symbol} error={error}",
                symbol=symbol,
                error=str(e),
            )
            return {}
        return {
            "name": getattr(details, "name", None),
            "market_cap": getattr(details, "market_cap", None),
        }

    def fetch_quote(self, symbol: str) -> RawRecord | None:
        logger.debug("Fetching Polygon snapshot symbol={symbol}", symbol=symbol)
        snapshot = self.client.get_snapshot_ticker("stocks", symbol)
        if snapshot is None:
            return None

        day = getattr(snapshot, "day", None)
        prev_day = getattr(snapshot, "prev_day", None)
        last_trade = getattr(snapshot, "last_trade", None)

        price = getattr(day, "close", None) or getattr(last_trade, "price", None)
        return {
            "symbol": getattr(snapshot, "ticker", None) or symbol,
            "price": price,
            "change": getattr(snapshot, "todays_change", None),
            "change_percent": getattr(snapshot, "todays_change_percent", None),
            "previous_close": getattr(prev_day, "close", None),
            "volume": getattr(day, "volume", None),
            **self._details(symbol),
        }

    def fetch_historical(self, symbol: str, start: date, end: date) -> Sequence[RawRecord]:
        logger.debug(
            "Fetching Polygon aggregates symbol={symbol} start={start} end={end}",
            symbol=symbol,
            start=str(start),
            end=str(end),
        )
        aggs = self.client.list_aggs(
            symbol,
            1,
            "day",
            start.isoformat(),
            end.isoformat(),
            adjusted=True,
            sort="asc",
            limit=50000,
        )
        return [
            {
                "timestamp": a.timestamp,
                "open": a.open,
                "high": a.high,
                "low": a.low,
                "close": a.close,
                "volume": a.volume,
            }
            for a in aggs
        ]

    def search_symbols(self, query: str, limit: int) -> Sequence[RawRecord]:
        tickers = self.client.list_tickers(search=query, market="stocks", active=True, limit=limit)
        # list_tickers paginates lazily; stop after the first `limit` results
        return [{"symbol": t.ticker, "name": t.name} for t in islice(tickers, limit)]

    def close(self) -> None:
        # RESTClient pools connections per request and has nothing to release
        return None


class EodhdProvider:
    """
    📡 EODHD provider (end-of-day and delayed real-time data, NSE/BSE coverage).

    Symbols use EODHD's exchange-qualified form, e.g. "RELIANCE.NSE".
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://eodhd.com/api",
        timeout: float = 10.0,
        http: httpx.Client | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            api_key: EODHD API token
            base_url: API root, without a trailing slash
            timeout: Per-request timeout in seconds
            http: Optional shared client; one is created and owned otherwise
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_client = http is None
        self._http = http or httpx.Client(
            timeout=timeout,
            headers={"Accept": "application/json", "User-Agent": "marketcache/1.0"},
        )

    def _get(self, path: str, **params: Any) -> Any:
        response = self._http.get(
            f"{self.base_url}{path}",
            params={"api_token": self.api_key, "fmt": "json", **params},
        )
        response.raise_for_status()
        return response.json()

    def fetch_quote(self, symbol: str) -> RawRecord | None:
        logger.debug("Fetching EODHD real-time quote symbol={symbol}", symbol=symbol)
        payload = self._get(f"/real-time/{symbol}")
        if not payload:
            return None
        if not isinstance(payload, Mapping):
            raise ValueError(f"Unexpected EODHD quote payload type: {type(payload).__name__}")
        return payload

    def fetch_historical(self, symbol: str, start: date, end: date) -> Sequence[RawRecord]:
        logger.debug(
            "Fetching EODHD end-of-day series symbol={symbol} start={start} end={end}",
            symbol=symbol,
            start=str(start),
            end=str(end),
        )
        payload = self._get(
            f"/eod/{symbol}",
            **{"from": start.isoformat(), "to": end.isoformat(), "period": "d", "order": "a"},
        )
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected EODHD eod payload type: {type(payload).__name__}")
        return payload

    def search_symbols(self, query: str, limit: int) -> Sequence[RawRecord]:
        payload = self._get(f"/search/{query}", limit=limit)
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected EODHD search payload type: {type(payload).__name__}")
        results = []
        for item in payload[:limit]:
            code = item.get("Code")
            if not code:
                continue
            exchange = item.get("Exchange")
            results.append(
                {
                    "symbol": f"{code}.{exchange}" if exchange else code,
                    "name": item.get("Name") or code,
                }
            )
        return results

    def close(self) -> None:
        if self._owns_client:
            self._http.close()
