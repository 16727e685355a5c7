"""Transaction processor - atomic buy, sell and top-up operations.

Each operation runs as one unit:

1. validate input (no lock held, no database access)
2. take the user's lock from :class:`UserLockRegistry`
3. read balance and position, compute the new state
4. write balance, position and transaction record, then commit

Any failure rolls the session back before the error propagates, so a
caller never observes a balance change without its holding change and log
entry, or vice versa.

Inside one process the user lock serializes operations.  Across processes
the ``version`` columns on ``users`` and ``holdings`` act as compare-and-swap:
a concurrent writer makes our flush fail with ``StaleDataError`` (or
``IntegrityError`` when two first buys race to insert the same position),
and the whole read-modify-write is retried from fresh state up to
``max_attempts`` times.
"""

import logging
from decimal import Decimal, localcontext
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from services.account_ledger import AccountLedger, to_positive_decimal
from services.exceptions import (
    InsufficientHoldingsError,
    InvalidAmountError,
    LedgerBusyError,
    LedgerError,
    ValidationError,
)
from services.holdings_store import HoldingsStore
from services.ledger_types import AccountSnapshot, Side, TradeResult, TransactionRecord
from services.transaction_log import TransactionLog
from services.user_locks import UserLockRegistry
from utils.money import (
    MONEY_LIMIT,
    MONEY_PLACES,
    QUANTITY_LIMIT,
    QUANTITY_PLACES,
    quantize_cost,
    quantize_money,
    within_limit,
)
from utils.ticker import is_valid_symbol, normalize_symbol

logger = logging.getLogger(__name__)

T = TypeVar("T")


def weighted_average_cost(
    held_quantity: Decimal,
    average_cost: Decimal,
    quantity: Decimal,
    price: Decimal,
) -> Decimal:
    """Average cost after buying ``quantity`` at ``price``.

    ``(held * avg + quantity * price) / (held + quantity)``, rounded to the
    ``average_cost`` column precision.  The intermediate products carry up
    to 42 significant digits, so they are computed in a wider context.
    """
    with localcontext() as ctx:
        ctx.prec = 60
        total_quantity = held_quantity + quantity
        average = (held_quantity * average_cost + quantity * price) / total_quantity
    return quantize_cost(average)


class TransactionProcessor:
    """Orchestrates ledger mutations across balance, holdings and history."""

    def __init__(
        self,
        ledger: AccountLedger,
        holdings: HoldingsStore,
        transactions: TransactionLog,
        locks: UserLockRegistry | None = None,
        *,
        lock_timeout: float = 5.0,
        max_attempts: int = 3,
    ):
        self._ledger = ledger
        self._holdings = holdings
        self._transactions = transactions
        self._locks = locks or UserLockRegistry()
        self._lock_timeout = lock_timeout
        self._max_attempts = max(1, max_attempts)

    def buy(self, db: Session, user_id: str, symbol: str, quantity, price) -> TradeResult:
        """Buy ``quantity`` shares of ``symbol`` at ``price``.

        Raises:
            ValidationError: On a bad symbol, quantity or price.
            InsufficientFundsError: If the balance does not cover the cost.
            NotFoundError: If the user does not exist.
            LedgerBusyError: If the account could not be locked or written in time.
        """
        symbol, quantity, price = self._validate_trade(user_id, "buy", symbol, quantity, price)
        return self._execute(
            db, user_id, "buy",
            lambda: self._apply_buy(db, user_id, symbol, quantity, price),
        )

    def sell(self, db: Session, user_id: str, symbol: str, quantity, price) -> TradeResult:
        """Sell ``quantity`` shares of ``symbol`` at ``price``.

        Raises:
            ValidationError: On a bad symbol, quantity or price.
            NoSuchHoldingError: If the user holds no ``symbol``.
            InsufficientHoldingsError: If ``quantity`` exceeds the position.
            NotFoundError: If the user does not exist.
            LedgerBusyError: If the account could not be locked or written in time.
        """
        symbol, quantity, price = self._validate_trade(user_id, "sell", symbol, quantity, price)
        return self._execute(
            db, user_id, "sell",
            lambda: self._apply_sell(db, user_id, symbol, quantity, price),
        )

    def top_up(self, db: Session, user_id: str, amount) -> AccountSnapshot:
        """Add cash to the account.  No transaction record is written.

        Raises:
            InvalidAmountError: If ``amount <= 0`` or unparseable.
            NotFoundError: If the user does not exist.
            LedgerBusyError: If the account could not be locked or written in time.
        """
        amount = to_positive_decimal(
            amount, field="amount", error_cls=InvalidAmountError,
            user_id=user_id, operation="top_up",
        )
        return self._execute(
            db, user_id, "top_up",
            lambda: self._apply_top_up(db, user_id, amount),
        )

    def list_transactions(self, db: Session, user_id: str) -> list[TransactionRecord]:
        """The user's trade history, newest first."""
        return self._transactions.list_for_user(db, user_id)

    # ------------------------------------------------------------------
    # Operation bodies. Called with the user lock held; they only flush.
    # ------------------------------------------------------------------

    def _apply_buy(
        self, db: Session, user_id: str, symbol: str, quantity: Decimal, price: Decimal
    ) -> TradeResult:
        cost = quantize_money(quantity * price)
        self._ledger.lock_account(db, user_id)
        current = self._holdings.get(db, user_id, symbol)

        if current is None:
            new_quantity = quantity
            new_average = quantize_cost(price)
        else:
            new_quantity = current.quantity + quantity
            if not within_limit(new_quantity, QUANTITY_LIMIT):
                raise ValidationError(
                    f"Position in {symbol} would exceed the maximum quantity: "
                    f"{current.quantity} + {quantity}",
                    field="quantity",
                    user_id=user_id,
                    operation="buy",
                )
            new_average = weighted_average_cost(
                current.quantity, current.average_cost, quantity, price
            )

        account = self._ledger.debit(db, user_id, cost)
        holding = self._holdings.save_position(db, user_id, symbol, new_quantity, new_average)
        record = self._transactions.append(
            db, user_id, symbol, Side.BUY, quantity, price, cost
        )
        return TradeResult(transaction=record, account=account, holding=holding)

    def _apply_sell(
        self, db: Session, user_id: str, symbol: str, quantity: Decimal, price: Decimal
    ) -> TradeResult:
        self._ledger.lock_account(db, user_id)
        current = self._holdings.require(db, user_id, symbol)
        if quantity > current.quantity:
            raise InsufficientHoldingsError(
                f"Insufficient holdings: requested {quantity} {symbol}, held {current.quantity}",
                user_id=user_id,
                operation="sell",
            )

        proceeds = quantize_money(quantity * price)
        # Cost basis is not recomputed on disposal.
        holding = self._holdings.save_position(
            db, user_id, symbol, current.quantity - quantity, current.average_cost
        )
        account = self._ledger.credit(db, user_id, proceeds)
        record = self._transactions.append(
            db, user_id, symbol, Side.SELL, quantity, price, proceeds
        )
        return TradeResult(transaction=record, account=account, holding=holding)

    def _apply_top_up(self, db: Session, user_id: str, amount: Decimal) -> AccountSnapshot:
        self._ledger.lock_account(db, user_id)
        return self._ledger.credit(db, user_id, amount)

    # ------------------------------------------------------------------

    def _execute(self, db: Session, user_id: str, operation: str, apply: Callable[[], T]) -> T:
        """Run ``apply`` under the user lock and commit, retrying on write conflicts."""
        with self._locks.hold(user_id, self._lock_timeout, operation):
            for attempt in range(1, self._max_attempts + 1):
                try:
                    result = apply()
                    db.commit()
                except (StaleDataError, IntegrityError) as exc:
                    db.rollback()
                    logger.warning(
                        "%s for user %s lost a concurrent write (attempt %d/%d): %s",
                        operation, user_id, attempt, self._max_attempts, exc,
                    )
                    continue
                except OperationalError as exc:
                    db.rollback()
                    logger.warning(
                        "%s for user %s hit a storage timeout: %s", operation, user_id, exc
                    )
                    raise LedgerBusyError(
                        "Storage is busy, try again", user_id=user_id, operation=operation
                    ) from exc
                except LedgerError as exc:
                    db.rollback()
                    exc.user_id = exc.user_id or user_id
                    exc.operation = operation
                    logger.warning(
                        "%s rejected for user %s: %s", operation, user_id, exc
                    )
                    raise
                except Exception:
                    db.rollback()
                    logger.exception("%s failed for user %s", operation, user_id)
                    raise
                else:
                    logger.info("%s committed for user %s", operation, user_id)
                    return result

        logger.error(
            "%s for user %s gave up after %d conflicting attempts",
            operation, user_id, self._max_attempts,
        )
        raise LedgerBusyError(
            "Account was modified concurrently, try again",
            user_id=user_id,
            operation=operation,
        )

    @staticmethod
    def _validate_trade(
        user_id: str, operation: str, symbol: str, quantity, price
    ) -> tuple[str, Decimal, Decimal]:
        symbol = normalize_symbol(symbol)
        if not symbol:
            raise ValidationError(
                "Missing field: symbol", field="symbol", user_id=user_id, operation=operation
            )
        if not is_valid_symbol(symbol):
            raise ValidationError(
                f"Invalid symbol: {symbol}", field="symbol", user_id=user_id, operation=operation
            )
        quantity = to_positive_decimal(
            quantity, field="quantity", places=QUANTITY_PLACES, limit=QUANTITY_LIMIT,
            user_id=user_id, operation=operation,
        )
        price = to_positive_decimal(
            price, field="price", places=MONEY_PLACES, limit=MONEY_LIMIT,
            user_id=user_id, operation=operation,
        )
        value = quantity * price
        if not within_limit(value, MONEY_LIMIT):
            raise ValidationError(
                f"Trade value {quantity} x {price} is too large",
                field="quantity",
                user_id=user_id,
                operation=operation,
            )
        if quantize_money(value) <= 0:
            raise ValidationError(
                f"Trade value {quantity} x {price} is below the smallest money unit",
                field="quantity",
                user_id=user_id,
                operation=operation,
            )
        return symbol, quantity, price
