"""Holding model - a user's open position in one symbol."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import ExactDecimal, generate_uuid


class Holding(Base):
    """An open position, unique per (user, symbol).

    Rows exist only while ``quantity > 0``; a sell that closes the position
    deletes the row.
    """

    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("user_id", "symbol", name="uix_holding_user_symbol"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    symbol = Column(String, nullable=False)  # normalized uppercase ticker
    quantity = Column(ExactDecimal(18, 8), nullable=False, default=Decimal("0"))
    average_cost = Column(ExactDecimal(24, 10), nullable=False, default=Decimal("0"))
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    user = relationship("User", back_populates="holdings")
