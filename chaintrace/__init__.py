"""
ChainTrace: laundering-chain analysis for wallet transfer ledgers.

Builds a wallet graph from transfer records, classifies each wallet's
behavioral role, scores it, and groups suspicious wallets into laundering
chains. Runs once over a ledger file or continuously over a rolling window
of live transactions.
"""

__version__ = "0.1.0"
