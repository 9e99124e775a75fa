"""Static symbol list used when the provider's search endpoint is unavailable."""

from marketcache.models import SymbolMatch

LOCAL_SYMBOLS: dict[str, str] = {
    "AAPL": "Apple Inc.",
    "MSFT": "Microsoft Corporation",
    "GOOGL": "Alphabet Inc.",
    "AMZN": "Amazon.com Inc.",
    "TSLA": "Tesla, Inc.",
    "NVDA": "NVIDIA Corporation",
    "META": "Meta Platforms, Inc.",
    "RELIANCE.NSE": "Reliance Industries Ltd",
    "TCS.NSE": "Tata Consultancy Services Ltd",
    "HDFCBANK.NSE": "HDFC Bank Ltd",
    "INFY.NSE": "Infosys Ltd",
    "ICICIBANK.NSE": "ICICI Bank Ltd",
    "HINDUNILVR.NSE": "Hindustan Unilever Ltd",
    "BHARTIARTL.NSE": "Bharti Airtel Ltd",
    "ITC.NSE": "ITC Ltd",
    "SBIN.NSE": "State Bank of India",
    "LT.NSE": "Larsen & Toubro Ltd",
    "KOTAKBANK.NSE": "Kotak Mahindra Bank Ltd",
    "ASIANPAINT.NSE": "Asian Paints Ltd",
    "MARUTI.NSE": "Maruti Suzuki India Ltd",
    "HCLTECH.NSE": "HCL Technologies Ltd",
    "AXISBANK.NSE": "Axis Bank Ltd",
    "BAJFINANCE.NSE": "Bajaj Finance Ltd",
    "TITAN.NSE": "Titan Company Ltd",
    "NESTLEIND.NSE": "Nestle India Ltd",
    "WIPRO.NSE": "Wipro Ltd",
    "ULTRACEMCO.NSE": "UltraTech Cement Ltd",
    "ONGC.NSE": "Oil & Natural Gas Corporation Ltd",
    "POWERGRID.NSE": "Power Grid Corporation of India Ltd",
    "NTPC.NSE": "NTPC Ltd",
    "TECHM.NSE": "Tech Mahindra Ltd",
    "SUNPHARMA.NSE": "Sun Pharmaceutical Industries Ltd",
    "TATAMOTORS.NSE": "Tata Motors Ltd",
    "BAJAJFINSV.NSE": "Bajaj Finserv Ltd",
    "COALINDIA.NSE": "Coal India Ltd",
    "DIVISLAB.NSE": "Divi's Laboratories Ltd",
    "DRREDDY.NSE": "Dr. Reddy's Laboratories Ltd",
}


def search_local(query: str, limit: int = 10) -> list[SymbolMatch]:
    """
    Case-insensitive substring search over the static symbol list.

    Symbol matches rank ahead of name-only matches.
    """
    needle = query.strip().lower()
    if not needle:
        return []

    by_symbol = [s for s in LOCAL_SYMBOLS if needle in s.lower()]
    by_name = [
        s for s, name in LOCAL_SYMBOLS.items() if s not in by_symbol and needle in name.lower()
    ]
    return [SymbolMatch(symbol=s, name=LOCAL_SYMBOLS[s]) for s in (by_symbol + by_name)[:limit]]
