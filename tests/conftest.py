"""
Pytest fixtures for ChainTrace tests: transaction factory and reference ledgers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from chaintrace.analysis_engine.models import Transaction

BASE_TIME = datetime(2023, 10, 27, 10, 0, tzinfo=timezone.utc)


def make_tx(
    tx_id: str,
    sender: str,
    receiver: str,
    amount: float,
    minutes: float = 0,
    token: str = "USDT",
) -> Transaction:
    """Transaction at BASE_TIME + minutes."""
    return Transaction(
        id=tx_id,
        from_wallet=sender,
        to_wallet=receiver,
        amount=amount,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        token=token,
    )


@pytest.fixture
def tx():
    """Factory fixture: tx("t1", "A", "B", 100, minutes=5)."""
    return make_tx


@pytest.fixture
def smurfing_ledger() -> list[Transaction]:
    """A fans 1000 out to B1..B3; each forwards 995 to C within the hour."""
    return [
        make_tx("t1", "A", "B1", 1000, 0),
        make_tx("t2", "A", "B2", 1000, 5),
        make_tx("t3", "A", "B3", 1000, 10),
        make_tx("t4", "B1", "C", 995, 30),
        make_tx("t5", "B2", "C", 995, 35),
        make_tx("t6", "B3", "C", 995, 40),
    ]


@pytest.fixture
def civilian_ledger() -> list[Transaction]:
    """Two unrelated small payments."""
    return [
        make_tx("c1", "Bob", "Alice", 50, 120),
        make_tx("c2", "Alice", "Shop", 20, 240),
    ]
