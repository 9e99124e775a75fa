"""Deterministic stand-in data served when the upstream provider fails.

Series are seeded from the symbol and the current date, so every fallback
for a symbol on a given day returns the same bars. Output is tagged
source="synthetic" but otherwise has the same shape as live data.
"""

import hashlib
import random
from datetime import date, datetime, timedelta, timezone

from marketcache.logging import logger
from marketcache.models import HistoricalBar, Quote

# Rough price levels so fallback charts sit near the real ballpark
BASE_PRICES: dict[str, float] = {
    "AAPL": 150.0,
    "MSFT": 330.0,
    "GOOGL": 135.0,
    "AMZN": 130.0,
    "TSLA": 240.0,
    "NVDA": 450.0,
    "RELIANCE.NSE": 2500.0,
    "TCS.NSE": 3500.0,
    "HDFCBANK.NSE": 1600.0,
    "INFY.NSE": 1450.0,
    "ICICIBANK.NSE": 950.0,
    "SBIN.NSE": 600.0,
    "ITC.NSE": 450.0,
}

INDIAN_EXCHANGE_BASE_PRICE = 2500.0

MIN_VOLUME = 500_000
MAX_VOLUME = 50_000_000


def _symbol_hash(*parts: str) -> int:
    digest = hashlib.sha256(":".join(parts).encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


class SyntheticDataGenerator:
    """
    🎲 Builds plausible OHLCV series and quotes for a symbol.

    Bars always satisfy low <= min(open, close) and high >= max(open, close).
    """

    def __init__(self, max_daily_move: float = 0.02, today: date | None = None) -> None:
        """
        Args:
            max_daily_move: Largest fractional close-to-close move per day
            today: Pin the last generated date. A pinned date takes precedence
                over any date passed to the generate methods.
        """
        if not 0 < max_daily_move < 1:
            raise ValueError("max_daily_move must be between 0 and 1")
        self.max_daily_move = max_daily_move
        self._today = today

    @property
    def today(self) -> date:
        return self._today or datetime.now(timezone.utc).date()

    def _end_date(self, today: date | None) -> date:
        return self._today or today or datetime.now(timezone.utc).date()

    def base_price(self, symbol: str) -> float:
        symbol = symbol.upper()
        if symbol in BASE_PRICES:
            return BASE_PRICES[symbol]
        if symbol.endswith((".NSE", ".BSE")):
            return INDIAN_EXCHANGE_BASE_PRICE
        # stable pseudo-price in [20, 500) so unknown symbols differ from each other
        return 20.0 + (_symbol_hash(symbol) % 48_000) / 100

    def _rng(self, symbol: str, end: date) -> random.Random:
        return random.Random(_symbol_hash(symbol.upper(), end.isoformat()))

    def generate_series(
        self, symbol: str, days: int, today: date | None = None
    ) -> list[HistoricalBar]:
        """
        Generate `days + 1` daily bars ending today, oldest first.

        Args:
            symbol: Symbol the data stands in for
            days: Lookback in calendar days (negative values are treated as 0)
            today: Last bar's date in the caller's timezone (current UTC date
                if omitted)

        Returns:
            A non-empty list of synthetic bars
        """
        days = max(0, days)
        end = self._end_date(today)
        rng = self._rng(symbol, end)
        base = self.base_price(symbol)
        floor, ceiling = base * 0.5, base * 1.5

        bars: list[HistoricalBar] = []
        previous_close = base
        for offset in range(days, -1, -1):
            bar_date = end - timedelta(days=offset)

            move = rng.uniform(-self.max_daily_move, self.max_daily_move)
            close = min(ceiling, max(floor, previous_close * (1 + move)))
            open_ = previous_close * (1 + rng.uniform(-0.01, 0.01))
            high = max(open_, close) * (1 + rng.uniform(0, 0.02))
            low = min(open_, close) * (1 - rng.uniform(0, 0.02))

            # rounding is monotone so the low <= open/close <= high ordering survives
            close = round(close, 2)
            bars.append(
                HistoricalBar(
                    date=bar_date,
                    open=round(open_, 2),
                    high=round(high, 2),
                    low=round(low, 2),
                    close=close,
                    volume=rng.randint(MIN_VOLUME, MAX_VOLUME),
                    adj_close=close,
                    source="synthetic",
                )
            )
            previous_close = close

        logger.warning(
            "Serving synthetic historical data symbol={symbol} bars={bars}",
            symbol=symbol,
            bars=len(bars),
        )
        return bars

    def generate_quote(self, symbol: str, now: datetime | None = None) -> Quote:
        """
        Build a quote consistent with the last two bars of a synthetic year.

        The 52-week range spans the bars' intraday highs and lows. `now` is
        read in its own timezone to pick the last bar's date.
        """
        bars = self.generate_series(symbol, 365, today=now.date() if now else None)
        last = bars[-1]
        previous = bars[-2]
        change = last.close - previous.close
        volumes = [bar.volume for bar in bars]

        logger.warning("Serving synthetic quote symbol={symbol}", symbol=symbol)
        return Quote(
            symbol=symbol,
            company_name=symbol,
            price=last.close,
            change=round(change, 2),
            change_percent=round(change / previous.close * 100, 4) if previous.close else 0.0,
            volume=last.volume,
            high_52_week=max(bar.high for bar in bars),
            low_52_week=min(bar.low for bar in bars),
            average_volume=sum(volumes) // len(volumes),
            last_updated=now or datetime.now(timezone.utc),
            source="synthetic",
        )
