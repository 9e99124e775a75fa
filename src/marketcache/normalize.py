"""Turn raw upstream payloads into Quote and HistoricalBar models.

Providers return plain mappings whose keys vary by vendor. Each Quote field
is looked up under a list of known key spellings; the first present value
wins. A bad field defaults to 0 instead of rejecting the whole record.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from marketcache.logging import logger
from marketcache.models import HistoricalBar, Quote
from marketcache.utils import parse_date, to_float, to_int

_QUOTE_KEYS: dict[str, tuple[str, ...]] = {
    "symbol": ("symbol", "code", "ticker"),
    "company_name": ("company_name", "longName", "shortName", "name"),
    "price": ("price", "regularMarketPrice", "last_price", "close"),
    "change": ("change", "regularMarketChange", "todays_change"),
    "change_percent": (
        "change_percent",
        "regularMarketChangePercent",
        "change_p",
        "todays_change_percent",
    ),
    "previous_close": ("previous_close", "previousClose", "regularMarketPreviousClose"),
    "volume": ("volume", "regularMarketVolume"),
    "market_cap": ("market_cap", "marketCap", "MarketCapitalization"),
    "pe_ratio": ("pe_ratio", "trailingPE", "PERatio"),
    "dividend_yield": ("dividend_yield", "dividendYield", "DividendYield"),
    "high_52_week": ("high_52_week", "fiftyTwoWeekHigh", "52WeekHigh"),
    "low_52_week": ("low_52_week", "fiftyTwoWeekLow", "52WeekLow"),
    "average_volume": ("average_volume", "averageVolume", "avgVolume"),
}

_BAR_KEYS: dict[str, tuple[str, ...]] = {
    "date": ("date", "timestamp", "t"),
    "open": ("open", "o"),
    "high": ("high", "h"),
    "low": ("low", "l"),
    "close": ("close", "c"),
    "volume": ("volume", "v"),
    "adj_close": ("adj_close", "adjClose", "adjusted_close"),
}


def _pick(raw: Mapping[str, Any], field: str, keys: dict[str, tuple[str, ...]]) -> Any:
    for key in keys[field]:
        value = raw.get(key)
        if value not in (None, "", "NA", "N/A"):
            return value
    return None


def normalize_quote(raw: Mapping[str, Any], symbol: str, now: datetime) -> Quote:
    """
    Build a Quote from a raw provider mapping.

    Args:
        raw: Provider payload (any of the known key spellings)
        symbol: Requested symbol, used when the payload does not echo one
        now: Timestamp recorded as `last_updated`

    Returns:
        A Quote whose numeric fields are finite; missing values are 0.
        `change` and `change_percent` are derived from the previous close
        when the payload omits them.
    """
    price = max(0.0, to_float(_pick(raw, "price", _QUOTE_KEYS)))
    previous_close = to_float(_pick(raw, "previous_close", _QUOTE_KEYS))

    raw_change = _pick(raw, "change", _QUOTE_KEYS)
    if raw_change is None and previous_close > 0:
        change = price - previous_close
    else:
        change = to_float(raw_change)

    raw_change_percent = _pick(raw, "change_percent", _QUOTE_KEYS)
    if raw_change_percent is None:
        prior = previous_close if previous_close > 0 else price - change
        change_percent = change / prior * 100 if prior > 0 else 0.0
    else:
        change_percent = to_float(raw_change_percent)

    resolved_symbol = str(_pick(raw, "symbol", _QUOTE_KEYS) or symbol)
    company_name = str(_pick(raw, "company_name", _QUOTE_KEYS) or resolved_symbol)

    return Quote(
        symbol=resolved_symbol,
        company_name=company_name,
        price=price,
        change=change,
        change_percent=change_percent,
        volume=to_int(_pick(raw, "volume", _QUOTE_KEYS)),
        market_cap=to_float(_pick(raw, "market_cap", _QUOTE_KEYS)),
        pe_ratio=to_float(_pick(raw, "pe_ratio", _QUOTE_KEYS)),
        dividend_yield=to_float(_pick(raw, "dividend_yield", _QUOTE_KEYS)),
        high_52_week=to_float(_pick(raw, "high_52_week", _QUOTE_KEYS)),
        low_52_week=to_float(_pick(raw, "low_52_week", _QUOTE_KEYS)),
        average_volume=to_int(_pick(raw, "average_volume", _QUOTE_KEYS)),
        last_updated=now,
    )


def normalize_bar(raw: Mapping[str, Any]) -> HistoricalBar | None:
    """Parse one raw record; None if its date cannot be read."""
    bar_date = parse_date(_pick(raw, "date", _BAR_KEYS))
    if bar_date is None:
        return None

    close = to_float(_pick(raw, "close", _BAR_KEYS))
    adj_close = _pick(raw, "adj_close", _BAR_KEYS)
    return HistoricalBar(
        date=bar_date,
        open=to_float(_pick(raw, "open", _BAR_KEYS)),
        high=to_float(_pick(raw, "high", _BAR_KEYS)),
        low=to_float(_pick(raw, "low", _BAR_KEYS)),
        close=close,
        volume=to_int(_pick(raw, "volume", _BAR_KEYS)),
        adj_close=close if adj_close is None else to_float(adj_close),
    )


def normalize_bars(records: Iterable[Mapping[str, Any]], symbol: str) -> list[HistoricalBar]:
    """Parse raw records into bars sorted by ascending date, dropping undated ones."""
    bars: list[HistoricalBar] = []
    dropped = 0
    for record in records:
        if not isinstance(record, Mapping):
            dropped += 1
            continue
        bar = normalize_bar(record)
        if bar is None:
            dropped += 1
            continue
        bars.append(bar)

    if dropped:
        logger.warning(
            "Dropped unparseable historical records symbol={symbol} dropped={dropped}",
            symbol=symbol,
            dropped=dropped,
        )
    return sorted(bars, key=lambda bar: bar.date)


def closes(bars: Sequence[HistoricalBar]) -> list[float]:
    return [bar.close for bar in bars]
