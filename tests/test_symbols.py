"""Tests for the local symbol list."""

from marketcache.symbols import LOCAL_SYMBOLS, search_local


class TestSearchLocal:
    """Tests for search_local."""

    def test_symbol_match_case_insensitive(self):
        """✅ Test lowercase queries match uppercase symbols."""
        results = search_local("reliance")

        assert results[0].symbol == "RELIANCE.NSE"
        assert results[0].name == "Reliance Industries Ltd"

    def test_symbol_matches_rank_before_name_matches(self):
        """✅ Test ticker hits come ahead of company-name hits."""
        symbols = [m.symbol for m in search_local("tata", limit=20)]

        assert "TCS.NSE" in symbols
        assert "TATAMOTORS.NSE" in symbols
        assert symbols.index("TATAMOTORS.NSE") < symbols.index("TCS.NSE")

    def test_limit(self):
        """✅ Test results are capped at the limit."""
        assert len(search_local(".nse", limit=5)) == 5

    def test_blank_query(self):
        """✅ Test a blank query matches nothing."""
        assert search_local("   ") == []

    def test_no_match(self):
        """✅ Test unknown text returns an empty list."""
        assert search_local("no-such-company") == []

    def test_local_list_includes_nse_stocks(self):
        """✅ Test the fallback list covers popular NSE stocks."""
        assert sum(1 for s in LOCAL_SYMBOLS if s.endswith(".NSE")) >= 30
