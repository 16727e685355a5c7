"""Stock market data API endpoints.

Read-only pass-through to the market data providers. None of these routes
touch the ledger.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_market_data_service
from schemas import TopMoversResponse
from services.market_data_service import MarketDataService

router = APIRouter(prefix="/api/stocks", tags=["stocks"])


@router.get("/search")
def search(
    symbol: str = Query(..., description="Ticker or company name fragment"),
    service: MarketDataService = Depends(get_market_data_service),
) -> Any:
    """Symbol search."""
    return service.search(symbol)


# Fixed paths are registered before /{symbol}/... routes.
@router.get("/top-movers", response_model=TopMoversResponse)
def top_movers(service: MarketDataService = Depends(get_market_data_service)):
    """Top five gainers and losers among a fixed set of large caps."""
    return service.get_top_movers()


@router.get("/news")
def market_news(service: MarketDataService = Depends(get_market_data_service)) -> Any:
    """General market news."""
    return service.get_market_news()


@router.get("/{symbol}/data")
def time_series(
    symbol: str,
    interval: str = Query("1h", description="Bar interval, e.g. 1min, 1h, 1day"),
    service: MarketDataService = Depends(get_market_data_service),
) -> Any:
    """Price series for ``symbol``."""
    return service.get_time_series(symbol, interval)


@router.get("/{symbol}/quote")
def quote(symbol: str, service: MarketDataService = Depends(get_market_data_service)) -> Any:
    return service.get_quote(symbol)


@router.get("/{symbol}/fundamentals")
def fundamentals(
    symbol: str, service: MarketDataService = Depends(get_market_data_service)
) -> Any:
    """Company profile merged with key valuation metrics."""
    return service.get_fundamentals(symbol)


@router.get("/{symbol}/financials")
def financials(
    symbol: str, service: MarketDataService = Depends(get_market_data_service)
) -> Any:
    return service.get_financials(symbol)


@router.get("/{symbol}/news")
def company_news(
    symbol: str, service: MarketDataService = Depends(get_market_data_service)
) -> Any:
    """News for ``symbol`` over the last week."""
    return service.get_company_news(symbol)
