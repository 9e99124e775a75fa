"""Data models for marketcache."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Period = Literal["1d", "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y", "10y", "ytd", "max"]
DataSource = Literal["live", "synthetic"]


class Quote(BaseModel):
    """
    📈 Point-in-time price snapshot for one symbol.

    Numeric fields the upstream does not provide are 0, never None or NaN.
    Instances are immutable; a newer fetch produces a new Quote.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Exchange-qualified symbol (e.g., 'RELIANCE.NSE')")
    company_name: str = Field(..., description="Company name, or the symbol if unknown")
    price: float = Field(..., description="Last traded price", ge=0)
    change: float = Field(0.0, description="Absolute change from previous close")
    change_percent: float = Field(0.0, description="Percent change from previous close")
    volume: int = Field(0, description="Traded volume for the session")
    market_cap: float = Field(0.0, description="Market capitalization")
    pe_ratio: float = Field(0.0, description="Trailing price/earnings ratio")
    dividend_yield: float = Field(0.0, description="Dividend yield")
    high_52_week: float = Field(0.0, description="52-week high")
    low_52_week: float = Field(0.0, description="52-week low")
    average_volume: int = Field(0, description="Average daily volume")
    last_updated: datetime = Field(..., description="When this snapshot was built")
    source: DataSource = Field("live", description="Whether the data is real or synthetic")


class HistoricalBar(BaseModel):
    """One trading-day OHLCV observation."""

    model_config = ConfigDict(frozen=True)

    date: date
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    volume: int = 0
    adj_close: float = 0.0
    source: DataSource = "live"


class MACD(BaseModel):
    model_config = ConfigDict(frozen=True)

    macd: float
    signal: float
    histogram: float


class BollingerBands(BaseModel):
    model_config = ConfigDict(frozen=True)

    upper: float
    middle: float
    lower: float


class TechnicalIndicatorSet(BaseModel):
    """
    🧮 Derived analytics for one symbol.

    Moving averages are 0 when the history is too short to compute them.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    rsi: float = Field(..., ge=0, le=100, description="14-period RSI")
    macd: MACD
    sma20: float
    sma50: float
    sma200: float
    ema12: float
    ema26: float
    bollinger: BollingerBands | None = Field(
        None, description="20-period Bollinger bands (None if insufficient data)"
    )
    volume: int
    average_volume: int
    price_change_24h: float
    price_change_percentage_24h: float
    source: DataSource = Field(
        "live", description="'synthetic' when computed from fallback history"
    )


class IndicatorSeries(BaseModel):
    """Per-bar indicator arrays for chart overlays, oldest value first."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    period: Period
    data_points: int
    sma20: list[float]
    sma50: list[float]
    rsi: list[float]
    macd_line: list[float]
    macd_signal: list[float]
    macd_histogram: list[float]
    bollinger_upper: list[float]
    bollinger_middle: list[float]
    bollinger_lower: list[float]
    source: DataSource = "live"


class SymbolMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
