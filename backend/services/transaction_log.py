"""Append-only transaction history."""

from decimal import Decimal

from sqlalchemy.orm import Session

from models import Transaction
from services.ledger_types import Side, TransactionRecord


class TransactionLog:
    """Stores one Transaction row per executed trade.

    Records are never updated or deleted.
    """

    def append(
        self,
        db: Session,
        user_id: str,
        symbol: str,
        side: Side,
        quantity: Decimal,
        price: Decimal,
        total_amount: Decimal,
    ) -> TransactionRecord:
        """Insert a record and flush so its id and timestamp are populated."""
        txn = Transaction(
            user_id=user_id,
            symbol=symbol,
            side=side.value,
            quantity=quantity,
            price=price,
            total_amount=total_amount,
        )
        db.add(txn)
        db.flush()
        return TransactionRecord(
            id=txn.id,
            user_id=user_id,
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=price,
            total_amount=total_amount,
            timestamp=txn.timestamp,
        )

    def list_for_user(self, db: Session, user_id: str) -> list[TransactionRecord]:
        """All trades for ``user_id``, newest first."""
        rows = (
            db.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.timestamp.desc(), Transaction.id)
            .all()
        )
        return [TransactionRecord.from_model(row) for row in rows]
