"""Transaction model - append-only record of executed trades."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import ExactDecimal, generate_uuid


class Transaction(Base):
    """An executed BUY or SELL.

    Rows are inserted by ``TransactionLog.append`` in the same database
    transaction as the balance and holding writes, and never updated or
    deleted afterwards.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    symbol = Column(String, nullable=False)
    side = Column(String(4), nullable=False)  # "BUY" | "SELL"
    quantity = Column(ExactDecimal(18, 8), nullable=False)
    price = Column(ExactDecimal(18, 4), nullable=False)
    total_amount = Column(ExactDecimal(18, 4), nullable=False)
    timestamp = Column(
        DateTime, nullable=False, default=lambda: datetime.now(timezone.utc), index=True
    )

    # Relationships
    user = relationship("User", back_populates="transactions")
