"""Unit tests for TransactionProcessor (buy, sell, top-up)."""

from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from models import Holding, Transaction, User
from services.account_ledger import AccountLedger
from services.exceptions import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidAmountError,
    LedgerBusyError,
    NoSuchHoldingError,
    NotFoundError,
    ValidationError,
)
from services.holdings_store import HoldingsStore
from services.ledger_types import Side
from services.transaction_log import TransactionLog
from services.transaction_processor import weighted_average_cost
from tests.fixtures import create_user


def _balance(db, user_id) -> Decimal:
    db.expire_all()
    return Decimal(db.query(User).filter(User.id == user_id).one().balance)


def _position(db, user_id, symbol):
    db.expire_all()
    return HoldingsStore().get(db, user_id, symbol)


class TestWeightedAverageCost:
    def test_average_of_two_lots(self):
        assert weighted_average_cost(
            Decimal("2"), Decimal("100"), Decimal("2"), Decimal("200")
        ) == Decimal("150")

    def test_rounds_to_cost_precision(self):
        avg = weighted_average_cost(Decimal("1"), Decimal("1"), Decimal("2"), Decimal("2"))
        assert avg == Decimal("1.6666666667")


class TestScenario:
    def test_buy_buy_sell_reject(self, db, processor, alice):
        """Worked example: two buys, a partial sell, then an oversell."""
        result = processor.buy(db, alice.id, "AAPL", "2", "100")
        assert result.account.balance == Decimal("800")
        assert result.holding.quantity == Decimal("2")
        assert result.holding.average_cost == Decimal("100")
        assert result.transaction.side == Side.BUY
        assert result.transaction.total_amount == Decimal("200")

        result = processor.buy(db, alice.id, "aapl", 2, 200)
        assert result.account.balance == Decimal("400")
        assert result.holding.quantity == Decimal("4")
        assert result.holding.average_cost == Decimal("150")

        result = processor.sell(db, alice.id, "AAPL", "3", "180")
        assert result.account.balance == Decimal("940")
        assert result.holding.quantity == Decimal("1")
        assert result.holding.average_cost == Decimal("150")
        assert result.transaction.total_amount == Decimal("540")

        with pytest.raises(InsufficientHoldingsError) as exc_info:
            processor.sell(db, alice.id, "AAPL", "5", "100")
        assert exc_info.value.user_id == alice.id
        assert exc_info.value.operation == "sell"

        assert _balance(db, alice.id) == Decimal("940")
        position = _position(db, alice.id, "AAPL")
        assert position.quantity == Decimal("1")
        assert position.average_cost == Decimal("150")
        assert db.query(Transaction).count() == 3

    def test_history_newest_first(self, db, processor, alice):
        processor.buy(db, alice.id, "AAPL", "1", "10")
        processor.buy(db, alice.id, "MSFT", "1", "20")
        processor.sell(db, alice.id, "AAPL", "1", "11")

        history = processor.list_transactions(db, alice.id)
        assert [(t.symbol, t.side) for t in history] == [
            ("AAPL", Side.SELL),
            ("MSFT", Side.BUY),
            ("AAPL", Side.BUY),
        ]


class TestBuy:
    def test_insufficient_funds_leaves_state_unchanged(self, db, processor, alice):
        with pytest.raises(InsufficientFundsError):
            processor.buy(db, alice.id, "AAPL", "11", "100")

        assert _balance(db, alice.id) == Decimal("1000")
        assert _position(db, alice.id, "AAPL") is None
        assert db.query(Transaction).count() == 0

    def test_exact_balance_buy(self, db, processor, alice):
        result = processor.buy(db, alice.id, "AAPL", "10", "100")
        assert result.account.balance == Decimal("0")

    def test_fractional_quantities(self, db, processor, alice):
        result = processor.buy(db, alice.id, "VOO", "0.12345678", "400")
        assert result.holding.quantity == Decimal("0.12345678")
        assert result.account.balance == Decimal("950.6173")

    @pytest.mark.parametrize(
        "symbol,quantity,price,message",
        [
            (None, "1", "10", "Missing field: symbol"),
            ("", "1", "10", "Missing field: symbol"),
            ("AA PL", "1", "10", "Invalid symbol"),
            ("AAPL", None, "10", "Missing field: quantity"),
            ("AAPL", "abc", "10", "Invalid number for: quantity"),
            ("AAPL", "1", "NaN", "Invalid number for: price"),
            ("AAPL", "0", "10", "quantity must be greater than zero"),
            ("AAPL", "1", "-10", "price must be greater than zero"),
            ("AAPL", "1", "10.00001", "price has too many decimal places"),
            ("AAPL", "0.000000001", "10", "quantity has too many decimal places"),
            ("AAPL", "0.00000001", "1", "below the smallest money unit"),
            ("AAPL", "1e25", "1000", "quantity is too large"),
            ("AAPL", "10000000000", "1", "quantity is too large"),
            ("AAPL", "1", "1e30", "price is too large"),
            ("AAPL", "9999999999", "99999999999", "Trade value .* is too large"),
        ],
    )
    def test_validation(self, db, processor, alice, symbol, quantity, price, message):
        with pytest.raises(ValidationError, match=message):
            processor.buy(db, alice.id, symbol, quantity, price)
        assert _balance(db, alice.id) == Decimal("1000")

    def test_unknown_user(self, db, processor):
        with pytest.raises(NotFoundError):
            processor.buy(db, "ghost", "AAPL", "1", "1")

    def test_average_cost_over_many_buys(self, db, processor, alice):
        lots = [("1", "10"), ("3", "20"), ("0.5", "40")]
        for quantity, price in lots:
            processor.buy(db, alice.id, "AMD", quantity, price)

        total_qty = sum(Decimal(q) for q, _ in lots)
        total_cost = sum(Decimal(q) * Decimal(p) for q, p in lots)
        position = _position(db, alice.id, "AMD")
        assert position.quantity == total_qty
        assert position.average_cost == (total_cost / total_qty).quantize(Decimal("0.0000000001"))


class TestSell:
    def test_sell_without_position(self, db, processor, alice):
        with pytest.raises(NoSuchHoldingError, match="No holdings found for symbol: AAPL"):
            processor.sell(db, alice.id, "AAPL", "1", "100")
        assert _balance(db, alice.id) == Decimal("1000")

    def test_sell_entire_position_deletes_row(self, db, processor, alice):
        processor.buy(db, alice.id, "TSLA", "2", "100")
        result = processor.sell(db, alice.id, "TSLA", "2", "150")

        assert result.holding is None
        assert result.account.balance == Decimal("1100")
        assert db.query(Holding).count() == 0

    def test_sell_keeps_average_cost(self, db, processor, alice):
        processor.buy(db, alice.id, "KO", "4", "50")
        result = processor.sell(db, alice.id, "KO", "1.5", "70")
        assert result.holding.quantity == Decimal("2.5")
        assert result.holding.average_cost == Decimal("50")


class TestTopUp:
    def test_top_up(self, db, processor, alice):
        account = processor.top_up(db, alice.id, "250.75")
        assert account.balance == Decimal("1250.75")
        assert db.query(Transaction).count() == 0

    @pytest.mark.parametrize("amount", ["0", "-5", None, "lots", "1e30", "100000000000000"])
    def test_invalid_amount_rejected(self, db, processor, alice, amount):
        with pytest.raises(InvalidAmountError):
            processor.top_up(db, alice.id, amount)
        assert _balance(db, alice.id) == Decimal("1000")

    def test_unknown_user(self, db, processor):
        with pytest.raises(NotFoundError):
            processor.top_up(db, "ghost", "10")


class TestRetriesAndStorageErrors:
    def test_retries_after_stale_write(self, db, processor, alice):
        """A version conflict is retried from fresh state and succeeds."""
        real_debit = AccountLedger.debit
        calls = {"n": 0}

        def flaky_debit(self, db, user_id, amount):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StaleDataError("users row version changed")
            return real_debit(self, db, user_id, amount)

        with patch.object(AccountLedger, "debit", flaky_debit):
            result = processor.buy(db, alice.id, "AAPL", "1", "100")

        assert calls["n"] == 2
        assert result.account.balance == Decimal("900")
        assert db.query(Transaction).count() == 1

    def test_gives_up_after_max_attempts(self, db, processor, alice):
        def always_stale(self, db, user_id, amount):
            raise StaleDataError("users row version changed")

        with patch.object(AccountLedger, "debit", always_stale):
            with pytest.raises(LedgerBusyError) as exc_info:
                processor.buy(db, alice.id, "AAPL", "1", "100")

        assert exc_info.value.retryable is True
        assert _balance(db, alice.id) == Decimal("1000")
        assert db.query(Transaction).count() == 0

    def test_storage_timeout_is_busy(self, db, processor, alice):
        def locked(self, db, user_id, amount):
            raise OperationalError("UPDATE users", {}, Exception("database is locked"))

        with patch.object(AccountLedger, "credit", locked):
            with pytest.raises(LedgerBusyError, match="Storage is busy"):
                processor.top_up(db, alice.id, "10")
        assert _balance(db, alice.id) == Decimal("1000")

    def test_lock_timeout_is_busy(self, db, processor, alice):
        """A held user lock makes a second operation fail fast as busy."""
        with processor._locks.hold(alice.id, timeout=1.0):
            processor._lock_timeout = 0.05
            with pytest.raises(LedgerBusyError, match="in progress"):
                processor.top_up(db, alice.id, "10")
        assert _balance(db, alice.id) == Decimal("1000")


class TestColumnLimits:
    def test_top_up_past_balance_limit_rejected(self, db, processor, alice):
        processor.top_up(db, alice.id, "99999999998000")
        with pytest.raises(InvalidAmountError, match="Balance would exceed the maximum"):
            processor.top_up(db, alice.id, "1000")
        assert _balance(db, alice.id) == Decimal("99999999999000")

    def test_position_past_quantity_limit_rejected(self, db, processor):
        whale = create_user(db, "Whale", "whale@example.com", Decimal("99999999999999"))
        processor.buy(db, whale.id, "PENNY", "9999999999", "0.0001")

        with pytest.raises(ValidationError, match="would exceed the maximum quantity"):
            processor.buy(db, whale.id, "PENNY", "1", "1")

        assert _position(db, whale.id, "PENNY").quantity == Decimal("9999999999")
        assert _balance(db, whale.id) == Decimal("99999999999999") - Decimal("999999.9999")

    def test_large_values_stored_exactly(self, db, processor, alice):
        """Balances beyond float precision survive a write and a fresh read."""
        processor.top_up(db, alice.id, "12345678901234.5678")
        assert _balance(db, alice.id) == Decimal("12345678902234.5678")

        processor.buy(db, alice.id, "BRK.A", "0.12345678", "98765432109876.5432")
        position = _position(db, alice.id, "BRK.A")
        txn = db.query(Transaction).one()
        total = Decimal(txn.total_amount)

        assert Decimal(txn.price) == Decimal("98765432109876.5432")
        assert total == (Decimal("0.12345678") * Decimal("98765432109876.5432")).quantize(
            Decimal("0.0001")
        )
        assert position.quantity == Decimal("0.12345678")
        assert position.average_cost == Decimal("98765432109876.5432")
        assert _balance(db, alice.id) == Decimal("12345678902234.5678") - total

    def test_balance_equals_initial_plus_flows(self, db, processor, alice):
        flows = Decimal("1000")
        processor.top_up(db, alice.id, "9876543210987.6543")
        flows += Decimal("9876543210987.6543")
        for quantity, price in [("3.33333333", "1234567.8901"), ("0.5", "99999.9999")]:
            flows -= processor.buy(db, alice.id, "MSFT", quantity, price).transaction.total_amount
        flows += processor.sell(db, alice.id, "MSFT", "1.75", "2345678.1234").transaction.total_amount

        assert _balance(db, alice.id) == flows


class TestAllOrNothing:
    """A failure after balance and holding writes were flushed leaves no trace."""

    def test_buy_failing_at_log_append_rolls_back(self, db, processor, alice):
        processor.buy(db, alice.id, "AAPL", "2", "100")

        with patch.object(TransactionLog, "append", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError, match="disk full"):
                processor.buy(db, alice.id, "AAPL", "1", "200")

        assert _balance(db, alice.id) == Decimal("800")
        position = _position(db, alice.id, "AAPL")
        assert position.quantity == Decimal("2")
        assert position.average_cost == Decimal("100")
        assert db.query(Transaction).count() == 1

    def test_first_buy_failing_at_log_append_leaves_no_position(self, db, processor, alice):
        with patch.object(TransactionLog, "append", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                processor.buy(db, alice.id, "NVDA", "1", "100")

        assert _balance(db, alice.id) == Decimal("1000")
        assert _position(db, alice.id, "NVDA") is None
        assert db.query(Transaction).count() == 0

    def test_closing_sell_failing_at_log_append_rolls_back(self, db, processor, alice):
        processor.buy(db, alice.id, "TSLA", "2", "100")

        with patch.object(TransactionLog, "append", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                processor.sell(db, alice.id, "TSLA", "2", "150")

        assert _balance(db, alice.id) == Decimal("800")
        position = _position(db, alice.id, "TSLA")
        assert position is not None
        assert position.quantity == Decimal("2")
        assert db.query(Transaction).count() == 1
