"""TwelveData market data provider: symbol search, time series and quotes."""

from typing import Any, Optional

from integrations.exceptions import ProviderAPIError, ProviderAuthError, ProviderDataError
from integrations.rest_client import JsonRestClient

DEFAULT_BASE_URL = "https://api.twelvedata.com"


class TwelveDataClient(JsonRestClient):
    """Series provider backed by the TwelveData REST API.

    TwelveData answers most errors with HTTP 200 and a body of the form
    ``{"status": "error", "code": 400, "message": "..."}``.
    """

    PROVIDER_NAME = "TwelveData"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
    ):
        super().__init__(api_key, base_url, timeout)

    def _auth_headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"apikey {api_key}"}

    def _check_body(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ProviderDataError(
                "TwelveData returned a non-object response",
                provider_name=self.PROVIDER_NAME,
            )
        if data.get("status") != "error":
            return

        message = data.get("message") or "unknown error"
        code = data.get("code")
        status_code = code if isinstance(code, int) else None
        if status_code in (401, 403):
            raise ProviderAuthError(
                f"TwelveData authentication failed: {message}",
                provider_name=self.PROVIDER_NAME,
            )
        raise ProviderAPIError(
            f"TwelveData API error: {message}",
            provider_name=self.PROVIDER_NAME,
            status_code=status_code,
        )

    def search_symbol(self, symbol: str) -> dict[str, Any]:
        return self._get_json("/symbol_search", {"symbol": symbol})

    def get_time_series(self, symbol: str, interval: str = "1h") -> dict[str, Any]:
        return self._get_json("/time_series", {"symbol": symbol, "interval": interval})

    def get_quote(self, symbol: str) -> dict[str, Any]:
        return self._get_json("/quote", {"symbol": symbol})
