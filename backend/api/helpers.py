"""Shared API helpers for route handlers.

Response builders that turn ledger snapshots into response-model dicts.
"""

from services.ledger_types import AccountSnapshot, HoldingSnapshot, TransactionRecord


def user_response_dict(account: AccountSnapshot) -> dict:
    """Build a UserResponse-compatible dict from an AccountSnapshot."""
    return {
        "id": account.user_id,
        "name": account.name,
        "email": account.email,
        "mobile_no": account.mobile_no,
        "balance": account.balance,
        "share_portfolio": account.share_portfolio,
    }


def holding_response_dict(holding: HoldingSnapshot) -> dict:
    """Build a HoldingResponse-compatible dict from a HoldingSnapshot."""
    return {
        "user_id": holding.user_id,
        "symbol": holding.symbol,
        "quantity": holding.quantity,
        "average_cost": holding.average_cost,
        "cost_basis": holding.cost_basis,
        "updated_at": holding.updated_at,
    }


def transaction_response_dict(record: TransactionRecord) -> dict:
    """Build a TransactionResponse-compatible dict from a TransactionRecord."""
    return {
        "id": record.id,
        "user_id": record.user_id,
        "symbol": record.symbol,
        "side": record.side.value,
        "quantity": record.quantity,
        "price": record.price,
        "total_amount": record.total_amount,
        "timestamp": record.timestamp,
    }
