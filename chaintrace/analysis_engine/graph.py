"""
Wallet graph: fold an ordered transaction list into per-address profiles.

Each transaction increments the sender's out-degree and total_sent and the
receiver's in-degree and total_received, and is appended to both profiles'
transaction lists. Self-transfers count on both sides of the degree and
volume tallies.
"""

from __future__ import annotations

from typing import Iterable

from chaintrace.analysis_engine.models import Transaction, WalletProfile
from chaintrace.chaintrace_logging import get_logger

logger = get_logger(__name__)


def build_wallet_graph(transactions: Iterable[Transaction]) -> dict[str, WalletProfile]:
    """
    Build address -> WalletProfile from transactions.

    Pure and deterministic. Mapping insertion order is first-reference order
    (sender before receiver within a transaction), which later fixes chain
    discovery order. Both endpoints are required; a transaction missing one
    is a programming error upstream.
    """
    wallets: dict[str, WalletProfile] = {}
    tx_count = 0
    for tx in transactions:
        assert tx.from_wallet and tx.to_wallet, f"transaction {tx.id!r} is missing an endpoint"
        sender = wallets.get(tx.from_wallet)
        if sender is None:
            sender = wallets[tx.from_wallet] = WalletProfile(address=tx.from_wallet)
        receiver = wallets.get(tx.to_wallet)
        if receiver is None:
            receiver = wallets[tx.to_wallet] = WalletProfile(address=tx.to_wallet)

        sender.out_degree += 1
        sender.total_sent += tx.amount
        sender.transactions.append(tx)

        receiver.in_degree += 1
        receiver.total_received += tx.amount
        # Self-transfer: listed once so per-wallet sums over transactions match the totals
        if receiver is not sender:
            receiver.transactions.append(tx)
        tx_count += 1

    logger.debug("wallet_graph_built", tx_count=tx_count, wallet_count=len(wallets))
    return wallets


def total_volume(transactions: Iterable[Transaction]) -> float:
    """Sum of amounts over all transactions."""
    return sum(tx.amount for tx in transactions)
