"""Immutable snapshots returned by the ledger services.

ORM rows never leave the service layer; callers get frozen dataclasses
that reflect committed (or about-to-be-committed) state.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from models import Holding, Transaction, User


class Side(str, Enum):
    """Trade direction."""

    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class AccountSnapshot:
    """A user's account as seen by the ledger (no secrets)."""

    user_id: str
    name: str
    email: str
    mobile_no: str | None
    balance: Decimal
    share_portfolio: bool

    @classmethod
    def from_model(cls, user: User) -> "AccountSnapshot":
        return cls(
            user_id=user.id,
            name=user.name,
            email=user.email,
            mobile_no=user.mobile_no,
            balance=Decimal(user.balance),
            share_portfolio=bool(user.share_portfolio),
        )


@dataclass(frozen=True)
class HoldingSnapshot:
    """An open position."""

    user_id: str
    symbol: str
    quantity: Decimal
    average_cost: Decimal
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, holding: Holding) -> "HoldingSnapshot":
        return cls(
            user_id=holding.user_id,
            symbol=holding.symbol,
            quantity=Decimal(holding.quantity),
            average_cost=Decimal(holding.average_cost),
            updated_at=holding.updated_at,
        )

    @property
    def cost_basis(self) -> Decimal:
        """Total cost of the open quantity at average cost."""
        return self.quantity * self.average_cost


@dataclass(frozen=True)
class TransactionRecord:
    """An executed trade from the append-only log."""

    id: str
    user_id: str
    symbol: str
    side: Side
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    timestamp: datetime

    @classmethod
    def from_model(cls, txn: Transaction) -> "TransactionRecord":
        return cls(
            id=txn.id,
            user_id=txn.user_id,
            symbol=txn.symbol,
            side=Side(txn.side),
            quantity=Decimal(txn.quantity),
            price=Decimal(txn.price),
            total_amount=Decimal(txn.total_amount),
            timestamp=txn.timestamp,
        )


@dataclass(frozen=True)
class TradeResult:
    """Outcome of a buy or sell.

    ``holding`` is ``None`` when a sell closed the position.
    """

    transaction: TransactionRecord
    account: AccountSnapshot
    holding: HoldingSnapshot | None
