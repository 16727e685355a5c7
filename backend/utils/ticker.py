"""Utility functions for handling ticker symbols."""

import re

# Plain exchange tickers plus the share-class / exchange-suffix forms the
# market data providers accept (BRK.B, RDS-A, SHOP.TO).
_SYMBOL_RE = re.compile(r"^[A-Z0-9][A-Z0-9.\-:]{0,19}$")


def normalize_symbol(symbol: str | None) -> str:
    """Return the canonical form of a ticker: stripped and uppercased.

    Holdings and transactions are keyed by this form, so lookups are
    case-insensitive.  Returns an empty string for ``None``.
    """
    if symbol is None:
        return ""
    return symbol.strip().upper()


def is_valid_symbol(symbol: str) -> bool:
    """Check that an already-normalized symbol looks like a ticker."""
    return bool(_SYMBOL_RE.match(symbol))
