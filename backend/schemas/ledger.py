"""Pydantic schemas for ledger request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TradeRequest(BaseModel):
    """Body for buy and sell.

    Numeric fields accept strings or numbers; they are parsed to Decimal by
    the ledger so malformed values get a per-field message.
    """

    symbol: Optional[str] = None
    quantity: Any = Field(default=None, description="Share quantity, string or number")
    price: Any = Field(default=None, description="Price per share, string or number")


class TopUpRequest(BaseModel):
    """Body for a cash top-up."""

    amount: Any = Field(default=None, description="Amount to add, string or number")


class UserCreate(BaseModel):
    """Schema for provisioning an account."""

    name: str
    email: str
    mobile_no: Optional[str] = None
    initial_balance: Any = None
    share_portfolio: bool = True


class SharingUpdate(BaseModel):
    """Schema for toggling the shared portfolio view."""

    enabled: bool


class UserResponse(BaseModel):
    """Public account view. Never carries credentials."""

    id: str
    name: str
    email: str
    mobile_no: Optional[str] = None
    balance: Decimal
    share_portfolio: bool


class HoldingResponse(BaseModel):
    """Schema for an open position."""

    user_id: str
    symbol: str
    quantity: Decimal
    average_cost: Decimal
    cost_basis: Decimal
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    """Schema for an executed trade."""

    id: str
    user_id: str
    symbol: str
    side: str
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    timestamp: datetime


class TradeResponse(BaseModel):
    """Result of a buy or sell: the trade plus the updated account."""

    transaction: TransactionResponse
    user: UserResponse


class MoverResponse(BaseModel):
    ticker: str
    price: Decimal
    change_percentage: Decimal
    volume: int = 0


class TopMoversResponse(BaseModel):
    top_gainers: list[MoverResponse]
    top_losers: list[MoverResponse]
