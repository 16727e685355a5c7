"""Test fixtures and sample data."""
import pytest
from decimal import Decimal

from models import Holding, User
from sqlalchemy.orm import Session


def create_user(
    db: Session,
    name: str,
    email: str,
    balance: Decimal = Decimal("0"),
    share_portfolio: bool = True,
) -> User:
    """Create and commit a user row directly, bypassing the ledger.

    Args:
        db: Database session
        name: Display name
        email: Unique email
        balance: Starting cash balance
        share_portfolio: Whether others may view the holdings

    Returns:
        The committed User
    """
    user = User(name=name, email=email, balance=balance, share_portfolio=share_portfolio)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_holding(
    db: Session,
    user: User,
    symbol: str,
    quantity: Decimal,
    average_cost: Decimal,
) -> Holding:
    """Create and commit a position for ``user``."""
    holding = Holding(
        user_id=user.id,
        symbol=symbol,
        quantity=quantity,
        average_cost=average_cost,
    )
    db.add(holding)
    db.commit()
    db.refresh(holding)
    return holding


@pytest.fixture
def alice(db: Session) -> User:
    """A user with 1000 in cash."""
    return create_user(db, "Alice", "alice@example.com", Decimal("1000"))


@pytest.fixture
def bob(db: Session) -> User:
    """A second user with 500 in cash."""
    return create_user(db, "Bob", "bob@example.com", Decimal("500"))


@pytest.fixture
def private_user(db: Session) -> User:
    """A user who does not share their portfolio."""
    return create_user(
        db, "Carol", "carol@example.com", Decimal("250"), share_portfolio=False
    )
