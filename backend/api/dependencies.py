"""Request-scoped dependencies shared by the route modules.

Tests replace these through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Header

from config import settings
from services.account_ledger import AccountLedger
from services.exceptions import AuthenticationRequiredError
from services.holdings_store import HoldingsStore
from services.market_data_service import MarketDataService
from services.transaction_log import TransactionLog
from services.transaction_processor import TransactionProcessor
from services.user_locks import UserLockRegistry


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity, resolved upstream and passed as ``X-User-Id``.

    Raises:
        AuthenticationRequiredError: If the header is missing or blank.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AuthenticationRequiredError("Authentication required")
    return user_id


@lru_cache
def get_transaction_processor() -> TransactionProcessor:
    """Process-wide processor; the user lock registry must be shared."""
    return TransactionProcessor(
        AccountLedger(),
        HoldingsStore(),
        TransactionLog(),
        UserLockRegistry(),
        lock_timeout=settings.LEDGER_LOCK_TIMEOUT_SECONDS,
        max_attempts=settings.LEDGER_MAX_ATTEMPTS,
    )


def get_account_ledger() -> AccountLedger:
    return AccountLedger()


def get_holdings_store() -> HoldingsStore:
    return HoldingsStore()


@lru_cache
def get_market_data_service() -> MarketDataService:
    """Process-wide market data service so its cache is shared."""
    return MarketDataService()
