"""Tests for decimal and ticker helpers."""

from decimal import Decimal

import pytest

from utils.money import (
    COST_PLACES,
    MONEY_PLACES,
    QUANTITY_PLACES,
    decimal_places,
    fits_places,
    quantize_cost,
    quantize_money,
)
from utils.ticker import is_valid_symbol, normalize_symbol


class TestDecimalPlaces:
    @pytest.mark.parametrize(
        "value, expected",
        [("100", 0), ("1E+2", 0), ("1.50", 1), ("0.0001", 4), ("-2.125", 3)],
    )
    def test_counts_significant_fraction_digits(self, value, expected):
        assert decimal_places(Decimal(value)) == expected

    def test_fits_places(self):
        assert fits_places(Decimal("1.1234"), MONEY_PLACES)
        assert not fits_places(Decimal("1.12345"), MONEY_PLACES)
        assert fits_places(Decimal("0.00000001"), QUANTITY_PLACES)
        assert fits_places(Decimal("1.10000000000"), MONEY_PLACES)


class TestQuantize:
    def test_money_rounds_half_even(self):
        assert quantize_money(Decimal("0.00005")) == Decimal("0.0000")
        assert quantize_money(Decimal("0.00015")) == Decimal("0.0002")

    def test_cost_precision(self):
        assert quantize_cost(Decimal(1) / Decimal(3)) == Decimal("0.3333333333")
        assert quantize_cost(Decimal("1")).as_tuple().exponent == COST_PLACES.as_tuple().exponent


class TestTicker:
    @pytest.mark.parametrize(
        "raw, expected", [(" aapl ", "AAPL"), ("brk.b", "BRK.B"), (None, ""), ("", "")]
    )
    def test_normalize_symbol(self, raw, expected):
        assert normalize_symbol(raw) == expected

    @pytest.mark.parametrize("symbol", ["AAPL", "BRK.B", "RDS-A", "SHOP.TO", "7203"])
    def test_valid_symbols(self, symbol):
        assert is_valid_symbol(symbol)

    @pytest.mark.parametrize("symbol", ["", "AA PL", ".AAPL", "A" * 21, "AAPL$"])
    def test_invalid_symbols(self, symbol):
        assert not is_valid_symbol(symbol)
