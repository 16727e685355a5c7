"""Market data provider protocol definitions.

Two provider roles exist.  A ``QuoteProvider`` (Finnhub) supplies quotes,
company data and news; a ``SeriesProvider`` (TwelveData) supplies symbol
search, price series and its own quote shape.  Payloads other than
:class:`Quote` are passed through as the provider returns them.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Protocol


@dataclass
class Quote:
    """Latest quote for a symbol."""

    symbol: str
    price: Decimal
    change: Decimal | None = None
    change_percent: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    open: Decimal | None = None
    previous_close: Decimal | None = None


class QuoteProvider(Protocol):
    """Quotes, company fundamentals and news."""

    @property
    def provider_name(self) -> str:
        ...

    @property
    def is_configured(self) -> bool:
        """True when an API key is available."""
        ...

    def get_quote(self, symbol: str) -> Quote:
        ...

    def get_company_profile(self, symbol: str) -> dict[str, Any]:
        ...

    def get_basic_financials(self, symbol: str) -> dict[str, Any]:
        ...

    def get_market_news(self, category: str = "general") -> list[dict[str, Any]]:
        ...

    def get_company_news(
        self, symbol: str, start_date: date, end_date: date
    ) -> list[dict[str, Any]]:
        """News for ``symbol`` published between the dates (inclusive)."""
        ...


class SeriesProvider(Protocol):
    """Symbol search and price series."""

    @property
    def provider_name(self) -> str:
        ...

    @property
    def is_configured(self) -> bool:
        ...

    def search_symbol(self, symbol: str) -> dict[str, Any]:
        ...

    def get_time_series(self, symbol: str, interval: str = "1h") -> dict[str, Any]:
        ...

    def get_quote(self, symbol: str) -> dict[str, Any]:
        ...
