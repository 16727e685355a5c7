"""Pydantic schemas for API request/response validation."""

from schemas.ledger import (
    HoldingResponse,
    MoverResponse,
    SharingUpdate,
    TopMoversResponse,
    TopUpRequest,
    TradeRequest,
    TradeResponse,
    TransactionResponse,
    UserCreate,
    UserResponse,
)

__all__ = [
    "HoldingResponse",
    "MoverResponse",
    "SharingUpdate",
    "TopMoversResponse",
    "TopUpRequest",
    "TradeRequest",
    "TradeResponse",
    "TransactionResponse",
    "UserCreate",
    "UserResponse",
]
