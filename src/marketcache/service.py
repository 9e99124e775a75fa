"""Market data service: cached quotes, history and indicators with fallback.

Public operations never raise for data problems. Each one has a defined
failure value instead:

    get_quote                 -> None
    get_historical_data       -> synthetic series (never empty)
    get_technical_indicators  -> None
    get_indicator_series      -> computed from the (possibly synthetic) series
    search_stocks             -> matches from the static local symbol list
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

import sentry_sdk

from marketcache import indicators
from marketcache.cache import CacheSweeper, TTLCache
from marketcache.logging import logger
from marketcache.models import (
    HistoricalBar,
    IndicatorSeries,
    Quote,
    SymbolMatch,
    TechnicalIndicatorSet,
)
from marketcache.normalize import closes, normalize_bars, normalize_quote
from marketcache.providers import MarketDataProvider
from marketcache.symbols import search_local
from marketcache.synthetic import SyntheticDataGenerator
from marketcache.upstream import UpstreamCaller
from marketcache.utils import PERIODS, now_in, period_days, resolve_period_start

DEFAULT_PERIOD = "1y"
INDICATOR_SERIES_PERIOD = "3mo"

# "max" would otherwise ask for half a century of synthetic bars
MAX_SYNTHETIC_DAYS = 3650


def _is_bar_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(bar, HistoricalBar) for bar in value)


def _is_match_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(m, SymbolMatch) for m in value)


class MarketDataService:
    """
    📊 Quotes, historical bars and technical indicators for ticker symbols.

    Build one instance at process start (see marketcache.bootstrap) and pass
    it to whatever needs market data. It is safe to share across threads.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        cache: TTLCache | None = None,
        upstream: UpstreamCaller | None = None,
        generator: SyntheticDataGenerator | None = None,
        sweeper: CacheSweeper | None = None,
        *,
        tz_name: str = "UTC",
        synthetic_quote_fallback: bool = False,
        search_limit: int = 10,
        max_batch_symbols: int = 10,
    ) -> None:
        """
        Initialize the service.

        Args:
            provider: Upstream market data source
            cache: Result cache (a 300 second TTLCache by default)
            upstream: Timeout-bounded caller for provider methods
            generator: Synthetic data source used on upstream failure
            sweeper: Running cache sweeper to stop on `close()`, if any
            tz_name: Timezone used to decide what "now" and "today" are
            synthetic_quote_fallback: Return synthetic quotes instead of None
            search_limit: Max results returned by `search_stocks`
            max_batch_symbols: Max symbols accepted by `get_quotes`
        """
        self.provider = provider
        self.cache = cache or TTLCache()
        self.upstream = upstream or UpstreamCaller()
        self.generator = generator or SyntheticDataGenerator()
        self.sweeper = sweeper
        self.tz_name = tz_name
        self.synthetic_quote_fallback = synthetic_quote_fallback
        self.search_limit = search_limit
        self.max_batch_symbols = max_batch_symbols

    def _now(self) -> datetime:
        return now_in(self.tz_name)

    @staticmethod
    def _clean(symbol: str) -> str:
        return (symbol or "").strip().upper()

    def _cached(self, key: str, is_valid: Callable[[Any], bool]) -> Any | None:
        value = self.cache.get(key)
        if value is None:
            return None
        if not is_valid(value):
            # only this class writes entries, so a foreign type is a bug
            logger.error(
                "Discarding corrupt cache entry key={key} type={type}",
                key=key,
                type=type(value).__name__,
            )
            self.cache.invalidate(key)
            return None
        return value

    # ------------------------------------------------------------------ quotes

    def _store_quote(self, symbol: str, raw: Mapping[str, Any] | None) -> Quote | None:
        if not raw:
            return None
        if not isinstance(raw, Mapping):
            logger.error(
                "Unexpected quote payload type symbol={symbol} type={type}",
                symbol=symbol,
                type=type(raw).__name__,
            )
            return None
        try:
            quote = normalize_quote(raw, symbol, self._now())
        except (TypeError, ValueError) as e:
            logger.error(
                "Malformed quote payload symbol={symbol} error={error}",
                symbol=symbol,
                error=str(e),
            )
            sentry_sdk.capture_exception(e)
            return None
        self.cache.set(f"quote:{symbol}", quote)
        return quote

    def _fetch_quote(self, symbol: str) -> Quote | None:
        raw = self.upstream.call(
            "quote",
            symbol,
            self.provider.fetch_quote,
            symbol,
            on_late_result=lambda late: self._store_quote(symbol, late),
        )
        quote = self._store_quote(symbol, raw)
        if quote is None:
            logger.warning("No quote available symbol={symbol}", symbol=symbol)
        return quote

    def _synthetic_quote(self, symbol: str) -> Quote:
        sentry_sdk.add_breadcrumb(
            category="market_data",
            message="Serving synthetic quote",
            level="warning",
            data={"symbol": symbol},
        )
        quote = self.generator.generate_quote(symbol, self._now())
        self.cache.set(f"quote:{symbol}", quote)
        return quote

    def get_quote(self, symbol: str) -> Quote | None:
        """
        📈 Current quote for a symbol.

        Args:
            symbol: Ticker symbol (case-insensitive, e.g. "reliance.nse")

        Returns:
            The cached or freshly fetched Quote, or None when the upstream
            fails (a synthetic Quote if `synthetic_quote_fallback` is on)
        """
        symbol = self._clean(symbol)
        if not symbol:
            return None

        cached = self._cached(f"quote:{symbol}", lambda v: isinstance(v, Quote))
        if cached is not None:
            logger.debug("Quote cache hit symbol={symbol}", symbol=symbol)
            return cached

        quote = self._fetch_quote(symbol)
        if quote is None and self.synthetic_quote_fallback:
            return self._synthetic_quote(symbol)
        return quote

    def get_quotes(self, symbols: Iterable[str]) -> list[Quote]:
        """
        Quotes for several symbols, skipping the ones that fail.

        Raises:
            ValueError: If more than `max_batch_symbols` distinct symbols are requested
        """
        cleaned = list(dict.fromkeys(s for s in map(self._clean, symbols) if s))
        if len(cleaned) > self.max_batch_symbols:
            raise ValueError(
                f"Maximum {self.max_batch_symbols} symbols allowed per request, got {len(cleaned)}"
            )
        quotes = [self.get_quote(symbol) for symbol in cleaned]
        return [quote for quote in quotes if quote is not None]

    # -------------------------------------------------------------- historical

    def _parse_bars(self, symbol: str, records: Sequence[Mapping[str, Any]] | None) -> list[HistoricalBar]:
        if not records:
            return []
        try:
            return normalize_bars(records, symbol)
        except (TypeError, ValueError) as e:
            logger.error(
                "Malformed historical payload symbol={symbol} error={error}",
                symbol=symbol,
                error=str(e),
            )
            sentry_sdk.capture_exception(e)
            return []

    def _store_late_bars(self, key: str, symbol: str, records: Sequence[Mapping[str, Any]]) -> None:
        bars = self._parse_bars(symbol, records)
        if bars:
            self.cache.set(key, bars)

    def _synthetic_series(self, symbol: str, period: str, now: datetime) -> list[HistoricalBar]:
        sentry_sdk.add_breadcrumb(
            category="market_data",
            message="Serving synthetic historical data",
            level="warning",
            data={"symbol": symbol, "period": period},
        )
        days = min(period_days(period, now), MAX_SYNTHETIC_DAYS)
        return self.generator.generate_series(symbol, days, today=now.date())

    def get_historical_data(self, symbol: str, period: str = DEFAULT_PERIOD) -> list[HistoricalBar]:
        """
        📜 Daily bars for a symbol over a lookback period, oldest first.

        Args:
            symbol: Ticker symbol (case-insensitive)
            period: One of 1d, 5d, 1mo, 3mo, 6mo, 1y, 2y, 5y, 10y, ytd, max.
                Unknown values fall back to 1y.

        Returns:
            A non-empty list of bars. Synthetic bars (source="synthetic") are
            returned when the upstream fails or has no data.
        """
        symbol = self._clean(symbol)
        if period not in PERIODS:
            logger.warning(
                "Unknown period, using default symbol={symbol} period={period} default={default}",
                symbol=symbol,
                period=period,
                default=DEFAULT_PERIOD,
            )
            period = DEFAULT_PERIOD

        key = f"historical:{symbol}:{period}"
        cached = self._cached(key, _is_bar_list)
        if cached:
            logger.debug("Historical cache hit symbol={symbol} period={period}", symbol=symbol, period=period)
            return list(cached)

        now = self._now()
        start = resolve_period_start(period, now)
        records = None
        if symbol:
            records = self.upstream.call(
                "historical",
                symbol,
                self.provider.fetch_historical,
                symbol,
                start,
                now.date(),
                on_late_result=lambda late: self._store_late_bars(key, symbol, late),
            )

        bars = self._parse_bars(symbol, records)
        if not bars:
            bars = self._synthetic_series(symbol, period, now)

        self.cache.set(key, bars)
        return list(bars)

    # -------------------------------------------------------------- indicators

    def get_technical_indicators(self, symbol: str) -> TechnicalIndicatorSet | None:
        """
        🧮 RSI, MACD, moving averages and Bollinger bands from one year of history.

        Returns:
            The indicator set, or None when no current quote is available
        """
        symbol = self._clean(symbol)
        if not symbol:
            return None

        key = f"technical:{symbol}"
        cached = self._cached(key, lambda v: isinstance(v, TechnicalIndicatorSet))
        if cached is not None:
            return cached

        try:
            bars = self.get_historical_data(symbol, DEFAULT_PERIOD)
            quote = self.get_quote(symbol)
            if quote is None:
                logger.info(
                    "Skipping technical indicators without a quote symbol={symbol}",
                    symbol=symbol,
                )
                return None

            prices = closes(bars)
            synthetic = bars[-1].source == "synthetic" or quote.source == "synthetic"
            result = TechnicalIndicatorSet(
                symbol=symbol,
                rsi=indicators.rsi(prices),
                macd=indicators.macd(prices),
                sma20=indicators.sma(prices, 20),
                sma50=indicators.sma(prices, 50),
                sma200=indicators.sma(prices, 200),
                ema12=indicators.ema(prices, 12),
                ema26=indicators.ema(prices, 26),
                bollinger=indicators.bollinger_bands(prices),
                volume=quote.volume,
                average_volume=quote.average_volume,
                price_change_24h=quote.change,
                price_change_percentage_24h=quote.change_percent,
                source="synthetic" if synthetic else "live",
            )
        except Exception as e:
            logger.error(
                "Failed to compute technical indicators symbol={symbol} error={error}",
                symbol=symbol,
                error=str(e),
            )
            sentry_sdk.capture_exception(e)
            return None

        self.cache.set(key, result)
        return result

    def get_indicator_series(
        self, symbol: str, period: str = INDICATOR_SERIES_PERIOD
    ) -> IndicatorSeries:
        """
        Per-bar SMA, RSI, MACD and Bollinger arrays for chart overlays.

        Each array is aligned to the end of the price series: the last value
        of every array belongs to the most recent bar.
        """
        symbol = self._clean(symbol)
        if period not in PERIODS:
            logger.warning(
                "Unknown period, using default symbol={symbol} period={period} default={default}",
                symbol=symbol,
                period=period,
                default=INDICATOR_SERIES_PERIOD,
            )
            period = INDICATOR_SERIES_PERIOD

        key = f"series:{symbol}:{period}"
        cached = self._cached(key, lambda v: isinstance(v, IndicatorSeries))
        if cached is not None:
            return cached

        bars = self.get_historical_data(symbol, period)
        prices = closes(bars)
        macd_line, macd_signal, macd_histogram = indicators.macd_series(prices)
        upper, middle, lower = indicators.bollinger_series(prices)

        result = IndicatorSeries(
            symbol=symbol,
            period=period,
            data_points=len(bars),
            sma20=indicators.sma_series(prices, 20),
            sma50=indicators.sma_series(prices, 50),
            rsi=indicators.rsi_series(prices),
            macd_line=macd_line,
            macd_signal=macd_signal,
            macd_histogram=macd_histogram,
            bollinger_upper=upper,
            bollinger_middle=middle,
            bollinger_lower=lower,
            source=bars[-1].source,
        )
        self.cache.set(key, result)
        return result

    # ------------------------------------------------------------------ search

    def search_stocks(self, query: str) -> list[SymbolMatch]:
        """
        🔎 Find symbols by ticker or company name.

        Falls back to the static local symbol list when the provider's
        search fails.
        """
        query = (query or "").strip()
        if not query:
            return []

        key = f"search:{query.lower()}"
        cached = self._cached(key, _is_match_list)
        if cached is not None:
            return list(cached)

        raw = self.upstream.call(
            "search", query, self.provider.search_symbols, query, self.search_limit
        )
        if raw is None:
            logger.warning("Falling back to local symbol search query={query}", query=query)
            return search_local(query, self.search_limit)

        matches = [
            SymbolMatch(symbol=str(item["symbol"]), name=str(item.get("name") or item["symbol"]))
            for item in raw
            if isinstance(item, Mapping) and item.get("symbol")
        ][: self.search_limit]
        self.cache.set(key, matches)
        return list(matches)

    # --------------------------------------------------------------- lifecycle

    def invalidate(self, symbol: str) -> None:
        """Drop every cached result for a symbol, forcing the next call upstream."""
        symbol = self._clean(symbol)
        self.cache.invalidate(f"quote:{symbol}")
        self.cache.invalidate(f"technical:{symbol}")
        self.cache.invalidate_prefix(f"historical:{symbol}:")
        self.cache.invalidate_prefix(f"series:{symbol}:")

    def close(self) -> None:
        """Stop the sweeper, the upstream worker pool and the provider."""
        if self.sweeper is not None:
            self.sweeper.stop()
        self.upstream.shutdown()
        self.provider.close()

    def __enter__(self) -> "MarketDataService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
