"""SQLAlchemy ORM models."""

from .holding import Holding
from .transaction import Transaction
from .user import User
from .utils import generate_uuid

__all__ = ["Holding", "Transaction", "User", "generate_uuid"]
