"""Market data service: thin orchestrator over the Finnhub and TwelveData clients."""

import logging
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Any, Callable, Iterator, Optional

from config import settings
from integrations.exceptions import ProviderError, ProviderNotConfiguredError
from integrations.market_data_protocol import QuoteProvider, SeriesProvider
from services.exceptions import UpstreamUnavailableError, ValidationError
from services.market_cache import SingleFlightCache
from utils.ticker import is_valid_symbol, normalize_symbol

logger = logging.getLogger(__name__)

# Large caps quoted for the top movers board.
TOP_MOVER_SYMBOLS = (
    "AAPL", "MSFT", "AMZN", "NVDA", "GOOGL", "META", "TSLA", "JPM", "V", "UNH",
    "XOM", "PG", "KO", "DIS", "AMD", "NFLX", "BA", "WMT", "COST", "INTC",
)
TOP_MOVERS_LIMIT = 5
COMPANY_NEWS_DAYS = 7

# Output field -> profile2 field
_PROFILE_FIELDS = {
    "CompanyName": "name",
    "Industry": "finnhubIndustry",
    "Weburl": "weburl",
    "Country": "country",
}
# Output field -> basic financials metric
_METRIC_FIELDS = {
    "PERatio": "peBasicExclExtraTTM",
    "DividendYield": "dividendYieldIndicatedAnnual",
    "Beta": "beta",
    "BookValue": "bookValuePerShareAnnual",
    "EPS": "epsTTM",
}


class MarketDataService:
    """Read-only market data with caching and error translation.

    Every provider failure surfaces as ``UpstreamUnavailableError``; missing
    API keys are reported as configuration failures (never retryable).
    Nothing here touches the ledger.
    """

    def __init__(
        self,
        quote_provider: Optional[QuoteProvider] = None,
        series_provider: Optional[SeriesProvider] = None,
        cache: Optional[SingleFlightCache] = None,
        today: Callable[[], date] = date.today,
    ):
        """Initialize with optional providers for dependency injection.

        Args:
            quote_provider: Quotes, fundamentals and news. If None, a
                FinnhubClient is created on first use.
            series_provider: Search and time series. If None, a
                TwelveDataClient is created on first use.
            cache: Cache for top movers and news.
            today: Date source for the company news window.
        """
        self._quote_provider = quote_provider
        self._series_provider = series_provider
        self._cache = cache or SingleFlightCache(settings.MARKET_CACHE_TTL_SECONDS)
        self._today = today

    @property
    def quote_provider(self) -> QuoteProvider:
        """Get the quote provider, creating if not provided."""
        if self._quote_provider is None:
            from integrations.finnhub_client import FinnhubClient

            self._quote_provider = FinnhubClient(
                api_key=settings.FINNHUB_API_KEY,
                base_url=settings.FINNHUB_BASE_URL,
                timeout=settings.MARKET_DATA_TIMEOUT_SECONDS,
            )
        return self._quote_provider

    @property
    def series_provider(self) -> SeriesProvider:
        """Get the series provider, creating if not provided."""
        if self._series_provider is None:
            from integrations.twelvedata_client import TwelveDataClient

            self._series_provider = TwelveDataClient(
                api_key=settings.TWELVEDATA_API_KEY,
                base_url=settings.TWELVEDATA_BASE_URL,
                timeout=settings.MARKET_DATA_TIMEOUT_SECONDS,
            )
        return self._series_provider

    # --- TwelveData ---------------------------------------------------

    def search(self, symbol: str) -> dict[str, Any]:
        symbol = self._require_symbol(symbol)
        with self._upstream(f"Symbol search for {symbol}"):
            return self.series_provider.search_symbol(symbol)

    def get_time_series(self, symbol: str, interval: str = "1h") -> dict[str, Any]:
        symbol = self._require_symbol(symbol)
        with self._upstream(f"Time series for {symbol}"):
            return self.series_provider.get_time_series(symbol, interval or "1h")

    def get_quote(self, symbol: str) -> dict[str, Any]:
        symbol = self._require_symbol(symbol)
        with self._upstream(f"Quote for {symbol}"):
            return self.series_provider.get_quote(symbol)

    # --- Finnhub ------------------------------------------------------

    def get_top_movers(self) -> dict[str, list[dict[str, Any]]]:
        """Best and worst performers of ``TOP_MOVER_SYMBOLS`` by percent change.

        Symbols whose quote fails are skipped.

        Raises:
            UpstreamUnavailableError: If no quote could be fetched at all.
        """
        return self._cache.get_or_load("top_movers", self._load_top_movers)

    def get_fundamentals(self, symbol: str) -> dict[str, Any]:
        """Company profile merged with key valuation metrics."""
        symbol = self._require_symbol(symbol)
        with self._upstream(f"Fundamentals for {symbol}"):
            profile = self.quote_provider.get_company_profile(symbol)
            financials = self.quote_provider.get_basic_financials(symbol)

        metric = financials.get("metric") or {}
        result = {key: profile.get(field) for key, field in _PROFILE_FIELDS.items()}
        market_cap = metric.get("marketCapitalization")
        result["MarketCapitalization"] = (
            market_cap if market_cap is not None else profile.get("marketCapitalization")
        )
        result.update({key: metric.get(field) for key, field in _METRIC_FIELDS.items()})
        return result

    def get_financials(self, symbol: str) -> dict[str, Any]:
        symbol = self._require_symbol(symbol)
        with self._upstream(f"Financials for {symbol}"):
            return self.quote_provider.get_basic_financials(symbol)

    def get_market_news(self) -> list[dict[str, Any]]:
        return self._cache.get_or_load("market_news", self._load_market_news)

    def get_company_news(self, symbol: str) -> list[dict[str, Any]]:
        """News for ``symbol`` over the last ``COMPANY_NEWS_DAYS`` days."""
        symbol = self._require_symbol(symbol)
        return self._cache.get_or_load(
            f"company_news:{symbol}", lambda: self._load_company_news(symbol)
        )

    def provider_status(self) -> dict[str, bool]:
        """Which provider API keys are configured."""
        return {
            "finnhub_key_set": self.quote_provider.is_configured,
            "twelvedata_key_set": self.series_provider.is_configured,
        }

    # --- loaders ------------------------------------------------------

    def _load_top_movers(self) -> dict[str, list[dict[str, Any]]]:
        logger.info("Fetching top movers for %d symbols", len(TOP_MOVER_SYMBOLS))
        movers = []
        for symbol in TOP_MOVER_SYMBOLS:
            try:
                quote = self.quote_provider.get_quote(symbol)
            except ProviderNotConfiguredError as exc:
                raise self._translate(exc, "Top movers") from exc
            except ProviderError as exc:
                logger.warning("Skipping %s in top movers: %s", symbol, exc)
                continue
            if quote.change_percent is None:
                logger.warning("Skipping %s in top movers: no percent change", symbol)
                continue
            movers.append(
                {
                    "ticker": symbol,
                    "price": quote.price,
                    "change_percentage": quote.change_percent,
                    "volume": 0,
                }
            )

        if not movers:
            raise UpstreamUnavailableError(
                "No quotes returned for top movers. Check API key or rate limits.",
                provider_name=self.quote_provider.provider_name,
                retryable=True,
            )

        ranked = sorted(movers, key=lambda m: m["change_percentage"], reverse=True)
        return {
            "top_gainers": ranked[:TOP_MOVERS_LIMIT],
            "top_losers": list(reversed(ranked))[:TOP_MOVERS_LIMIT],
        }

    def _load_market_news(self) -> list[dict[str, Any]]:
        with self._upstream("Market news"):
            return self.quote_provider.get_market_news("general")

    def _load_company_news(self, symbol: str) -> list[dict[str, Any]]:
        end = self._today()
        start = end - timedelta(days=COMPANY_NEWS_DAYS)
        with self._upstream(f"Company news for {symbol}"):
            return self.quote_provider.get_company_news(symbol, start, end)

    # --- helpers ------------------------------------------------------

    @staticmethod
    def _require_symbol(symbol: str) -> str:
        normalized = normalize_symbol(symbol)
        if not normalized:
            raise ValidationError("Missing field: symbol", field="symbol")
        if not is_valid_symbol(normalized):
            raise ValidationError(f"Invalid symbol: {normalized}", field="symbol")
        return normalized

    @contextmanager
    def _upstream(self, what: str) -> Iterator[None]:
        try:
            yield
        except ProviderError as exc:
            raise self._translate(exc, what) from exc

    @staticmethod
    def _translate(exc: ProviderError, what: str) -> UpstreamUnavailableError:
        if isinstance(exc, ProviderNotConfiguredError):
            logger.warning("%s unavailable: %s", what, exc)
            return UpstreamUnavailableError(
                str(exc), provider_name=exc.provider_name, configuration=True
            )
        logger.warning("%s failed (%s): %s", what, exc.provider_name, exc)
        return UpstreamUnavailableError(
            f"{what} failed: {exc}",
            provider_name=exc.provider_name,
            retryable=exc.retriable,
        )
