"""Transactions API endpoints: buy, sell and trade history."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.dependencies import get_current_user_id, get_transaction_processor
from api.helpers import transaction_response_dict, user_response_dict
from database import get_db
from schemas import TradeRequest, TradeResponse, TransactionResponse
from services.ledger_types import TradeResult
from services.transaction_processor import TransactionProcessor

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _trade_response(result: TradeResult) -> dict:
    return {
        "transaction": transaction_response_dict(result.transaction),
        "user": user_response_dict(result.account),
    }


@router.post("/buy", response_model=TradeResponse)
def buy(
    request: TradeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    processor: TransactionProcessor = Depends(get_transaction_processor),
):
    """Buy shares at the given price, debiting the caller's balance."""
    result = processor.buy(db, user_id, request.symbol, request.quantity, request.price)
    return _trade_response(result)


@router.post("/sell", response_model=TradeResponse)
def sell(
    request: TradeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    processor: TransactionProcessor = Depends(get_transaction_processor),
):
    """Sell shares at the given price, crediting the caller's balance."""
    result = processor.sell(db, user_id, request.symbol, request.quantity, request.price)
    return _trade_response(result)


@router.get("", response_model=list[TransactionResponse])
def list_transactions(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    processor: TransactionProcessor = Depends(get_transaction_processor),
):
    """The caller's trade history, newest first."""
    return [
        transaction_response_dict(record)
        for record in processor.list_transactions(db, user_id)
    ]
