import pytest
from datetime import datetime, timezone
from chainledger.core.errors import (
    InsufficientBalance, ListingExpired, ListingNotFound, NotOwner, DuplicateActiveListing,
)
from chainledger.core.filters import paginate
from chainledger.core.txid import RandomTxIdGenerator
from chainledger.core.types import as_utc, parse_positive, parse_uint
from chainledger.services.event_recorder import EventFilter
from chainledger.services.transactions import TransactionFilter


@pytest.mark.parametrize("value,expected", [
    ("0", 0),
    ("42", 42),
    (" 7 ", 7),
    (12, 12),
    (str(2 ** 256 - 1), 2 ** 256 - 1),
    ("1" * 79, None),
    ("-1", None),
    ("1.0", None),
    ("1e3", None),
    ("0x10", None),
    (1.0, None),
    (True, None),
    (-3, None),
    (None, None),
])
def test_parse_uint(value, expected):
    assert parse_uint(value) == expected


def test_parse_positive_rejects_zero():
    assert parse_positive("0") is None
    assert parse_positive("1") == 1


def test_as_utc():
    naive = datetime(2024, 5, 1, 12, 0)
    assert as_utc(naive).tzinfo is timezone.utc
    aware = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(aware) is aware
    assert as_utc(None) is None


def test_error_envelope_fields():
    err = InsufficientBalance("have 1, need 2")
    assert err.to_dict() == {"kind": "InsufficientBalance", "category": "InsufficientBalance", "message": "have 1, need 2"}
    assert ListingNotFound().to_dict()["category"] == "NotFound"
    assert ListingNotFound().status_code == 404
    assert NotOwner().status_code == 403
    assert ListingExpired().status_code == 410
    assert DuplicateActiveListing().status_code == 409


def test_tx_ids_are_unique_hashes():
    gen = RandomTxIdGenerator()
    ids = {gen.new_tx_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(i.startswith("0x") and len(i) == 66 for i in ids)
    assert 18_000_000 <= gen.new_block_number() < 19_000_000


def test_paginate_clamps():
    assert paginate(None, None) == (50, 0)
    assert paginate(3, 10) == (10, 20)
    assert paginate(0, 1000) == (100, 0)


def test_filter_skips_unset_fields():
    assert EventFilter().clauses() == []
    assert len(EventFilter(event_name="Mint", network_id=1).clauses()) == 2


def test_filter_custom_clause():
    clause = TransactionFilter(address="0xabc").clauses()[0]
    compiled = str(clause.compile(compile_kwargs={"literal_binds": True}))
    assert "from_address = '0xabc'" in compiled
    assert "to_address = '0xabc'" in compiled
