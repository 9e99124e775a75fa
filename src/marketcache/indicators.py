"""Technical indicators computed from closing-price arrays.

Every function here is pure: it takes a sequence of closing prices ordered
oldest to newest and returns numbers, with no I/O and no shared state.

EMA is seeded with the first price rather than an SMA warm-up window.
"""

from collections.abc import Sequence

import polars as pl

from marketcache.models import MACD, BollingerBands

Prices = Sequence[float]


def _series(prices: Prices) -> pl.Series:
    return pl.Series("close", [float(p) for p in prices], dtype=pl.Float64)


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")


def sma(prices: Prices, period: int) -> float:
    """Arithmetic mean of the last `period` prices, or 0.0 if there are fewer."""
    _check_period(period)
    if len(prices) < period:
        return 0.0
    return float(_series(prices[-period:]).mean())  # type: ignore[arg-type]


def sma_series(prices: Prices, period: int) -> list[float]:
    """Rolling SMA for every complete window, oldest first."""
    _check_period(period)
    if len(prices) < period:
        return []
    return _series(prices).rolling_mean(window_size=period).drop_nulls().to_list()


def ema_series(prices: Prices, period: int) -> list[float]:
    """EMA at every point: seeded with prices[0], alpha = 2 / (period + 1)."""
    _check_period(period)
    if len(prices) == 0:
        return []
    return _series(prices).ewm_mean(span=period, adjust=False).to_list()


def ema(prices: Prices, period: int) -> float:
    """Latest EMA value, or 0.0 for an empty price array."""
    values = ema_series(prices, period)
    return float(values[-1]) if values else 0.0


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # flat series is neutral, otherwise only gains means the upper bound
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return min(100.0, max(0.0, 100.0 - 100.0 / (1.0 + rs)))


def rsi_series(prices: Prices, period: int = 14) -> list[float]:
    """
    Wilder RSI for each point from index `period` onward.

    The first value averages gains and losses over the first `period`
    deltas; later values apply Wilder smoothing. Empty when there are fewer
    than `period + 1` prices.
    """
    _check_period(period)
    if len(prices) < period + 1:
        return []

    deltas = [float(prices[i]) - float(prices[i - 1]) for i in range(1, len(prices))]
    gains = [d if d > 0 else 0.0 for d in deltas]
    losses = [-d if d < 0 else 0.0 for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    values = [_rsi_value(avg_gain, avg_loss)]

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        values.append(_rsi_value(avg_gain, avg_loss))

    return values


def rsi(prices: Prices, period: int = 14) -> float:
    """Latest RSI in [0, 100]; 50.0 (neutral) when history is too short."""
    values = rsi_series(prices, period)
    return values[-1] if values else 50.0


def macd_series(
    prices: Prices, fast: int = 12, slow: int = 26, signal: int = 9
) -> tuple[list[float], list[float], list[float]]:
    """
    MACD line, signal line and histogram at every point.

    The signal line is the `signal`-period EMA of the MACD line history.
    """
    for p in (fast, slow, signal):
        _check_period(p)
    if len(prices) == 0:
        return [], [], []

    closes = _series(prices)
    line = closes.ewm_mean(span=fast, adjust=False) - closes.ewm_mean(span=slow, adjust=False)
    signal_line = line.ewm_mean(span=signal, adjust=False)
    histogram = line - signal_line
    return line.to_list(), signal_line.to_list(), histogram.to_list()


def macd(prices: Prices, fast: int = 12, slow: int = 26, signal: int = 9) -> MACD:
    line, signal_line, histogram = macd_series(prices, fast, slow, signal)
    if not line:
        return MACD(macd=0.0, signal=0.0, histogram=0.0)
    return MACD(macd=line[-1], signal=signal_line[-1], histogram=histogram[-1])


def bollinger_series(
    prices: Prices, period: int = 20, num_std: float = 2.0
) -> tuple[list[float], list[float], list[float]]:
    """Upper, middle and lower bands for every complete window (population std)."""
    _check_period(period)
    if len(prices) < period:
        return [], [], []

    closes = _series(prices)
    frame = pl.DataFrame(
        {
            "middle": closes.rolling_mean(window_size=period),
            "std": closes.rolling_std(window_size=period, ddof=0),
        }
    ).drop_nulls()
    frame = frame.with_columns(
        (pl.col("middle") + pl.col("std") * num_std).alias("upper"),
        (pl.col("middle") - pl.col("std") * num_std).alias("lower"),
    )
    return frame["upper"].to_list(), frame["middle"].to_list(), frame["lower"].to_list()


def bollinger_bands(
    prices: Prices, period: int = 20, num_std: float = 2.0
) -> BollingerBands | None:
    """Bands for the latest window, or None when history is too short."""
    upper, middle, lower = bollinger_series(prices, period, num_std)
    if not middle:
        return None
    return BollingerBands(upper=upper[-1], middle=middle[-1], lower=lower[-1])
