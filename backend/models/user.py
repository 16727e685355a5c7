"""User model - a portfolio owner and their cash balance."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import ExactDecimal, generate_uuid


class User(Base):
    """An account holder.

    ``balance`` is only ever written by ``AccountLedger``. ``version`` is an
    optimistic concurrency counter: a flush that updates a row whose version
    changed since it was read raises ``StaleDataError``.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    mobile_no = Column(String, nullable=True)
    balance = Column(ExactDecimal(18, 4), nullable=False, default=Decimal("0"))
    share_portfolio = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    holdings = relationship("Holding", back_populates="user")
    transactions = relationship("Transaction", back_populates="user")
