"""Arbitrary-precision integer column and wire-value parsing.

Balances, supplies, prices and token numbers can exceed 64 bits, so they are
stored as NUMERIC(78, 0) on PostgreSQL (large enough for any uint256). Other
backends (SQLite in tests) get a zero-padded fixed-width string column, which
keeps ORDER BY and comparisons numeric without ever passing through a float.
"""
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

UINT_DIGITS = 78
_DIGITS_RE = re.compile(r"^[0-9]+$")

class TokenAmount(TypeDecorator):
    impl = Numeric(UINT_DIGITS, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(UINT_DIGITS, 0, asdecimal=True))
        return dialect.type_descriptor(String(UINT_DIGITS))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0:
            raise ValueError(f"negative amount cannot be stored: {value}")
        if dialect.name == "postgresql":
            return Decimal(value)
        return str(value).zfill(UINT_DIGITS)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)

def parse_uint(value) -> Optional[int]:
    """Parse a non-negative integer given as a decimal string or int.

    Returns None when the value is not a plain base-10 integer. Floats are
    rejected outright so no amount is ever rounded.
    """
    if isinstance(value, bool) or isinstance(value, float):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not _DIGITS_RE.match(value) or len(value) > UINT_DIGITS:
        return None
    return int(value)

def parse_positive(value) -> Optional[int]:
    parsed = parse_uint(value)
    if parsed is None or parsed <= 0:
        return None
    return parsed

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat those as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
