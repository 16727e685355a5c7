"""API route handlers."""
from . import holdings, stocks, transactions, users

__all__ = ["holdings", "stocks", "transactions", "users"]
