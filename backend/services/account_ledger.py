"""Account ledger - single source of truth for users' cash balances."""

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import User
from services.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from services.ledger_types import AccountSnapshot
from utils.money import MONEY_LIMIT, MONEY_PLACES, fits_places, quantize_money, within_limit

logger = logging.getLogger(__name__)


def to_decimal(
    value,
    *,
    field: str,
    error_cls: type[LedgerError] = ValidationError,
    user_id: str | None = None,
    operation: str | None = None,
) -> Decimal:
    """Coerce ``value`` to a finite ``Decimal``.

    Floats go through ``str()`` so ``0.1`` becomes ``Decimal("0.1")``.

    Raises:
        error_cls: If the value is missing, unparseable or not finite.
    """
    if value is None or isinstance(value, bool):
        raise error_cls(f"Missing field: {field}", user_id=user_id, operation=operation)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise error_cls(
            f"Invalid number for: {field}", user_id=user_id, operation=operation
        ) from None
    if not amount.is_finite():
        raise error_cls(f"Invalid number for: {field}", user_id=user_id, operation=operation)
    return amount


def to_positive_decimal(
    value,
    *,
    field: str,
    error_cls: type[LedgerError] = ValidationError,
    places: Decimal = MONEY_PLACES,
    limit: Decimal = MONEY_LIMIT,
    user_id: str | None = None,
    operation: str | None = None,
) -> Decimal:
    """Coerce ``value`` to a finite, strictly positive ``Decimal``.

    Values with more precision than ``places`` are rejected rather than
    rounded, and values of ``limit`` or more are rejected because they do
    not fit the storage column.

    Raises:
        error_cls: If the value is missing, unparseable, not finite, not
            positive, too precise, or too large.
    """
    amount = to_decimal(
        value, field=field, error_cls=error_cls, user_id=user_id, operation=operation
    )
    if amount <= 0:
        raise error_cls(
            f"{field} must be greater than zero, got {amount}",
            user_id=user_id,
            operation=operation,
        )
    if not within_limit(amount, limit):
        raise error_cls(
            f"{field} is too large: {amount}",
            user_id=user_id,
            operation=operation,
        )
    if not fits_places(amount, places):
        raise error_cls(
            f"{field} has too many decimal places: {amount}",
            user_id=user_id,
            operation=operation,
        )
    return amount


class AccountLedger:
    """Applies credits and debits to a user's cash balance.

    ``credit`` and ``debit`` only flush; the caller owns the database
    transaction.  Request handlers never call them directly; they go
    through ``TransactionProcessor`` so every balance change is paired
    with its holding and log writes.
    """

    def get_account(self, db: Session, user_id: str) -> AccountSnapshot:
        """Return the account snapshot for ``user_id``.

        Raises:
            NotFoundError: If the user does not exist.
        """
        return AccountSnapshot.from_model(self._load(db, user_id))

    def lock_account(self, db: Session, user_id: str) -> AccountSnapshot:
        """Load the account row for a read-modify-write cycle.

        Issues ``SELECT ... FOR UPDATE`` on backends that support it; the
        row's version is pinned in the session so a later flush fails with
        ``StaleDataError`` if another writer got there first.
        """
        return AccountSnapshot.from_model(self._load(db, user_id, for_update=True))

    def open_account(
        self,
        db: Session,
        *,
        name: str,
        email: str,
        mobile_no: str | None = None,
        initial_balance: Decimal | int | str = Decimal("0"),
        share_portfolio: bool = True,
    ) -> AccountSnapshot:
        """Provision a new account and commit it.

        Raises:
            ValidationError: On a blank name/email, a duplicate email, or a
                negative/unparseable initial balance.
        """
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name:
            raise ValidationError("Missing field: name", field="name", operation="open_account")
        if not email or "@" not in email:
            raise ValidationError("Invalid email address", field="email", operation="open_account")

        balance = Decimal("0")
        if initial_balance is not None:
            balance = to_decimal(
                initial_balance, field="initial_balance", operation="open_account"
            )
            if (
                balance < 0
                or not fits_places(balance, MONEY_PLACES)
                or not within_limit(balance, MONEY_LIMIT)
            ):
                raise ValidationError(
                    f"Invalid initial balance: {balance}",
                    field="initial_balance",
                    operation="open_account",
                )

        if db.query(User.id).filter(User.email == email).first() is not None:
            raise ValidationError(
                f"Email already registered: {email}", field="email", operation="open_account"
            )

        user = User(
            name=name,
            email=email,
            mobile_no=(mobile_no or "").strip() or None,
            balance=quantize_money(balance),
            share_portfolio=share_portfolio,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError(
                f"Email already registered: {email}", field="email", operation="open_account"
            ) from None
        db.refresh(user)
        logger.info("Account opened: %s (id=%s, balance=%s)", email, user.id, user.balance)
        return AccountSnapshot.from_model(user)

    def credit(self, db: Session, user_id: str, amount) -> AccountSnapshot:
        """Add ``amount`` to the balance.

        Raises:
            InvalidAmountError: If ``amount <= 0`` or the new balance would
                not fit the balance column.
            NotFoundError: If the user does not exist.
        """
        amount = to_positive_decimal(
            amount, field="amount", error_cls=InvalidAmountError,
            user_id=user_id, operation="credit",
        )
        user = self._load(db, user_id)
        new_balance = Decimal(user.balance) + amount
        if not within_limit(new_balance, MONEY_LIMIT):
            raise InvalidAmountError(
                f"Balance would exceed the maximum of {MONEY_LIMIT:f}: "
                f"{Decimal(user.balance)} + {amount}",
                user_id=user_id,
                operation="credit",
            )
        user.balance = quantize_money(new_balance)
        db.flush()
        return AccountSnapshot.from_model(user)

    def debit(self, db: Session, user_id: str, amount) -> AccountSnapshot:
        """Subtract ``amount`` from the balance.

        Raises:
            InvalidAmountError: If ``amount <= 0``.
            InsufficientFundsError: If the balance would go negative.
            NotFoundError: If the user does not exist.
        """
        amount = to_positive_decimal(
            amount, field="amount", error_cls=InvalidAmountError,
            user_id=user_id, operation="debit",
        )
        user = self._load(db, user_id)
        balance = Decimal(user.balance)
        if balance < amount:
            raise InsufficientFundsError(
                f"Insufficient funds: required {amount}, available {balance}",
                user_id=user_id,
                operation="debit",
            )
        user.balance = quantize_money(balance - amount)
        db.flush()
        return AccountSnapshot.from_model(user)

    def set_sharing(self, db: Session, user_id: str, enabled: bool) -> AccountSnapshot:
        """Grant or revoke the shared portfolio view and commit."""
        user = self._load(db, user_id)
        user.share_portfolio = bool(enabled)
        db.commit()
        db.refresh(user)
        logger.info("Portfolio sharing for %s set to %s", user_id, user.share_portfolio)
        return AccountSnapshot.from_model(user)

    @staticmethod
    def _load(db: Session, user_id: str, *, for_update: bool = False) -> User:
        query = db.query(User).filter(User.id == user_id)
        if for_update:
            query = query.with_for_update()
        user = query.first()
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return user
