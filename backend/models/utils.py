"""Shared utilities for ORM models."""

import uuid
from decimal import ROUND_HALF_EVEN, Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


class ExactDecimal(TypeDecorator):
    """Fixed-point ``Numeric(precision, scale)`` that never passes through float.

    SQLite has no decimal storage class and SQLAlchemy's ``Numeric`` goes
    through ``float`` there, which keeps only about 15 significant digits.
    On SQLite the value is stored as its plain decimal string with exactly
    ``scale`` fraction digits in a TEXT-affinity column; other backends get
    a native ``NUMERIC``.  Values are always returned as ``Decimal``.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int, scale: int):
        super().__init__(precision=precision, scale=scale, asdecimal=True)
        self.precision = precision
        self.scale = scale
        self._quantum = Decimal(1).scaleb(-scale)

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.precision + 2))
        return dialect.type_descriptor(
            Numeric(precision=self.precision, scale=self.scale, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(value).quantize(self._quantum, rounding=ROUND_HALF_EVEN)
        if dialect.name == "sqlite":
            return f"{value:f}"
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(self._quantum, rounding=ROUND_HALF_EVEN)
