"""Finnhub market data provider: quotes, company data and news."""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from integrations.exceptions import ProviderAPIError, ProviderDataError
from integrations.market_data_protocol import Quote
from integrations.rest_client import JsonRestClient

DEFAULT_BASE_URL = "https://finnhub.io/api/v1"


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class FinnhubClient(JsonRestClient):
    """Quote provider backed by the Finnhub REST API.

    Finnhub reports some failures as HTTP 200 with an ``error`` field, and
    returns an all-zero quote for symbols it does not know.
    """

    PROVIDER_NAME = "Finnhub"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
    ):
        super().__init__(api_key, base_url, timeout)

    def _auth_headers(self, api_key: str) -> dict[str, str]:
        return {"X-Finnhub-Token": api_key}

    def _check_body(self, data: Any) -> None:
        if isinstance(data, dict) and data.get("error"):
            raise ProviderAPIError(
                f"Finnhub API error: {data['error']}",
                provider_name=self.PROVIDER_NAME,
            )

    def get_quote(self, symbol: str) -> Quote:
        """Latest quote for ``symbol``.

        Raises:
            ProviderDataError: If Finnhub has no price for the symbol.
        """
        data = self._get_json("/quote", {"symbol": symbol})
        price = _to_decimal(data.get("c")) if isinstance(data, dict) else None
        if price is None or (price == 0 and not data.get("t")):
            raise ProviderDataError(
                f"Finnhub returned no quote for {symbol}",
                provider_name=self.PROVIDER_NAME,
            )
        return Quote(
            symbol=symbol,
            price=price,
            change=_to_decimal(data.get("d")),
            change_percent=_to_decimal(data.get("dp")),
            high=_to_decimal(data.get("h")),
            low=_to_decimal(data.get("l")),
            open=_to_decimal(data.get("o")),
            previous_close=_to_decimal(data.get("pc")),
        )

    def get_company_profile(self, symbol: str) -> dict[str, Any]:
        data = self._get_json("/stock/profile2", {"symbol": symbol})
        return data if isinstance(data, dict) else {}

    def get_basic_financials(self, symbol: str) -> dict[str, Any]:
        data = self._get_json("/stock/metric", {"symbol": symbol, "metric": "all"})
        return data if isinstance(data, dict) else {}

    def get_market_news(self, category: str = "general") -> list[dict[str, Any]]:
        data = self._get_json("/news", {"category": category})
        return self._as_list(data, "news")

    def get_company_news(
        self, symbol: str, start_date: date, end_date: date
    ) -> list[dict[str, Any]]:
        data = self._get_json(
            "/company-news",
            {"symbol": symbol, "from": start_date.isoformat(), "to": end_date.isoformat()},
        )
        return self._as_list(data, "company news")

    def _as_list(self, data: Any, what: str) -> list[dict[str, Any]]:
        if not isinstance(data, list):
            raise ProviderDataError(
                f"Finnhub returned malformed {what}",
                provider_name=self.PROVIDER_NAME,
            )
        return data
