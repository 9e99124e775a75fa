"""Tests for synthetic fallback data."""

from datetime import date, datetime, timedelta, timezone

import pytest
import pytz

from marketcache.synthetic import (
    INDIAN_EXCHANGE_BASE_PRICE,
    MAX_VOLUME,
    MIN_VOLUME,
    SyntheticDataGenerator,
)

TODAY = date(2024, 6, 14)


@pytest.fixture
def generator():
    return SyntheticDataGenerator(today=TODAY)


class TestGenerateSeries:
    """Tests for SyntheticDataGenerator.generate_series."""

    def test_series_length_and_dates(self, generator):
        """✅ Test days + 1 consecutive bars ending today, oldest first."""
        bars = generator.generate_series("AAPL", 30)

        assert len(bars) == 31
        assert bars[0].date == TODAY - timedelta(days=30)
        assert bars[-1].date == TODAY
        assert all(b.date < n.date for b, n in zip(bars, bars[1:]))

    @pytest.mark.parametrize("symbol", ["AAPL", "RELIANCE.NSE", "ZZZZ"])
    def test_bars_are_internally_consistent(self, generator, symbol):
        """✅ Test low <= open/close <= high and volume stays in range."""
        for bar in generator.generate_series(symbol, 365):
            assert bar.low <= min(bar.open, bar.close)
            assert bar.high >= max(bar.open, bar.close)
            assert bar.low > 0
            assert MIN_VOLUME <= bar.volume <= MAX_VOLUME
            assert bar.source == "synthetic"

    def test_series_is_deterministic_per_day(self):
        """✅ Test the same symbol on the same day yields identical bars."""
        first = SyntheticDataGenerator(today=TODAY).generate_series("MSFT", 60)
        second = SyntheticDataGenerator(today=TODAY).generate_series("MSFT", 60)
        next_day = SyntheticDataGenerator(today=TODAY + timedelta(days=1)).generate_series("MSFT", 60)

        assert first == second
        assert [b.close for b in first] != [b.close for b in next_day]

    def test_zero_days_still_returns_a_bar(self, generator):
        """✅ Test the fallback is never empty."""
        assert len(generator.generate_series("AAPL", 0)) == 1
        assert len(generator.generate_series("AAPL", -5)) == 1

    def test_prices_stay_near_base(self, generator):
        """✅ Test closes stay within half and one and a half times the base price."""
        base = generator.base_price("AAPL")

        for bar in generator.generate_series("AAPL", 3650):
            assert base * 0.5 <= bar.close <= base * 1.5


class TestBasePrice:
    """Tests for SyntheticDataGenerator.base_price."""

    def test_known_and_indian_symbols(self, generator):
        """✅ Test listed symbols and the Indian exchange default."""
        assert generator.base_price("aapl") == 150.0
        assert generator.base_price("UNLISTED.NSE") == INDIAN_EXCHANGE_BASE_PRICE

    def test_unknown_symbol_is_stable(self, generator):
        """✅ Test unknown symbols get a stable price in [20, 500)."""
        price = generator.base_price("QWERTY")

        assert 20 <= price < 500
        assert generator.base_price("QWERTY") == price

    def test_invalid_max_move(self):
        """❌ Test the daily move bound must be a fraction."""
        with pytest.raises(ValueError):
            SyntheticDataGenerator(max_daily_move=0)


class TestGenerateQuote:
    """Tests for SyntheticDataGenerator.generate_quote."""

    def test_quote_matches_last_bars(self, generator):
        """✅ Test the quote agrees with the synthetic series it came from."""
        now = datetime(2024, 6, 14, 12, tzinfo=timezone.utc)
        bars = generator.generate_series("TCS.NSE", 365)

        quote = generator.generate_quote("TCS.NSE", now)

        assert quote.price == bars[-1].close
        assert quote.change == pytest.approx(bars[-1].close - bars[-2].close, abs=0.01)
        assert quote.low_52_week <= quote.price <= quote.high_52_week
        assert quote.last_updated == now
        assert quote.source == "synthetic"


class TestEndDate:
    """Tests for the date a synthetic series ends on."""

    def test_series_ends_on_callers_date(self):
        """✅ Test an explicit date sets the last bar for an unpinned generator."""
        bars = SyntheticDataGenerator().generate_series("AAPL", 5, today=date(2024, 1, 10))

        assert bars[0].date == date(2024, 1, 5)
        assert bars[-1].date == date(2024, 1, 10)

    def test_pinned_date_takes_precedence(self, generator):
        """✅ Test a pinned generator ignores the caller's date."""
        bars = generator.generate_series("AAPL", 5, today=date(2024, 1, 10))

        assert bars[-1].date == TODAY

    def test_quote_uses_date_of_now_in_its_timezone(self):
        """✅ Test a quote built late on a UTC day east of UTC uses the local date."""
        now = datetime(2024, 6, 14, 23, 0, tzinfo=timezone.utc).astimezone(
            pytz.timezone("Pacific/Kiritimati")
        )
        generator = SyntheticDataGenerator()

        quote = generator.generate_quote("AAPL", now)
        bars = generator.generate_series("AAPL", 365, today=date(2024, 6, 15))

        assert now.date() == date(2024, 6, 15)
        assert quote.price == bars[-1].close


class TestQuoteRange:
    """Tests for the synthetic quote's 52-week range."""

    def test_range_uses_intraday_extremes(self, generator):
        """✅ Test the 52-week range comes from bar highs and lows, not closes."""
        now = datetime(2024, 6, 14, 12, tzinfo=timezone.utc)
        bars = generator.generate_series("INFY.NSE", 365)

        quote = generator.generate_quote("INFY.NSE", now)

        assert quote.high_52_week == max(bar.high for bar in bars)
        assert quote.low_52_week == min(bar.low for bar in bars)
        assert quote.high_52_week >= max(bar.close for bar in bars)
        assert quote.low_52_week <= min(bar.close for bar in bars)
