"""Holdings API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.dependencies import get_current_user_id, get_holdings_store
from api.helpers import holding_response_dict
from database import get_db
from schemas import HoldingResponse
from services.holdings_store import HoldingsStore

router = APIRouter(prefix="/api/holdings", tags=["holdings"])


@router.get("", response_model=list[HoldingResponse])
def list_holdings(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    store: HoldingsStore = Depends(get_holdings_store),
):
    """The caller's open positions ordered by symbol."""
    return [holding_response_dict(h) for h in store.list_for_user(db, user_id)]


# Registered before /{symbol} so "shared" is not read as a ticker.
@router.get("/shared/{owner_id}", response_model=list[HoldingResponse])
def list_shared_holdings(
    owner_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    store: HoldingsStore = Depends(get_holdings_store),
):
    """Read-only view of another user's portfolio, if they share it."""
    return [holding_response_dict(h) for h in store.list_shared(db, user_id, owner_id)]


@router.get("/{symbol}", response_model=HoldingResponse)
def get_holding(
    symbol: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    store: HoldingsStore = Depends(get_holdings_store),
):
    """A single position of the caller."""
    return holding_response_dict(store.require(db, user_id, symbol))
