"""External market data integrations.

This package contains:
- Market data protocols: Quote plus the QuoteProvider / SeriesProvider roles
- Finnhub client: quotes, company profile, financials and news
- TwelveData client: symbol search and price time series
"""

from integrations.market_data_protocol import Quote, QuoteProvider, SeriesProvider

__all__ = [
    "Quote",
    "QuoteProvider",
    "SeriesProvider",
]
