"""Users API endpoints: accounts, top-up and sharing."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.dependencies import get_account_ledger, get_current_user_id, get_transaction_processor
from api.helpers import user_response_dict
from database import get_db
from schemas import SharingUpdate, TopUpRequest, UserCreate, UserResponse
from services.account_ledger import AccountLedger
from services.transaction_processor import TransactionProcessor

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: UserCreate,
    db: Session = Depends(get_db),
    ledger: AccountLedger = Depends(get_account_ledger),
):
    """Provision an account. Identity itself is managed upstream."""
    account = ledger.open_account(
        db,
        name=request.name,
        email=request.email,
        mobile_no=request.mobile_no,
        initial_balance=request.initial_balance,
        share_portfolio=request.share_portfolio,
    )
    return user_response_dict(account)


@router.post("/topup", response_model=UserResponse)
def top_up(
    request: TopUpRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    processor: TransactionProcessor = Depends(get_transaction_processor),
):
    """Add cash to the caller's balance."""
    return user_response_dict(processor.top_up(db, user_id, request.amount))


@router.put("/me/sharing", response_model=UserResponse)
def update_sharing(
    request: SharingUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    ledger: AccountLedger = Depends(get_account_ledger),
):
    """Enable or disable the shared view of the caller's holdings."""
    return user_response_dict(ledger.set_sharing(db, user_id, request.enabled))


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(get_current_user_id)],
)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    ledger: AccountLedger = Depends(get_account_ledger),
):
    """Public profile and balance of a user."""
    return user_response_dict(ledger.get_account(db, user_id))
