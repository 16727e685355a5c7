"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api import holdings, stocks, transactions, users
from api.dependencies import get_market_data_service
from database import Base, get_engine
from logging_config import setup_logging
from services.exceptions import AppError, ValidationError
from services.market_data_service import MarketDataService

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create any missing ledger tables on startup."""
    Base.metadata.create_all(bind=get_engine())
    logger.info("Ledger schema ready")
    yield


app = FastAPI(
    title="Stock Ledger",
    description="Transactional stock portfolio ledger with market data",
    version="0.1.0",
    lifespan=lifespan,
)


def _error_body(exc: AppError) -> dict:
    return {"detail": exc.message, "error": exc.code, "retryable": exc.retryable}


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Map typed application errors to their HTTP status and error body."""
    logger.info(
        "%s %s -> %d %s (user=%s)",
        request.method, request.url.path, exc.status_code, exc.code, exc.user_id,
    )
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported like ledger validation errors."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        if first.get("type") == "missing":
            message = f"Missing field: {field}"
        else:
            message = f"Invalid value for: {field}"
    return JSONResponse(status_code=400, content=_error_body(ValidationError(message)))


# Include API routers
app.include_router(transactions.router)
app.include_router(holdings.router)
app.include_router(users.router)
app.include_router(stocks.router)


@app.get("/health")
def health_check(service: MarketDataService = Depends(get_market_data_service)):
    """Health check endpoint with market data key status."""
    return {"status": "ok", "market_data": service.provider_status()}
